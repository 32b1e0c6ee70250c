"""Request dependencies: the service container and the calling identity."""

from fastapi import Depends, Header
from pydantic import BaseModel

from bingsu.errors import Forbidden, Unauthorized
from bingsu.models.customer import CustomerRole
from bingsu.services import ShopServices
from bingsu.state.manager import get_state_manager


class Caller(BaseModel):
    """Identity resolved by the upstream auth layer; trusted as given."""

    caller_id: str | None = None
    role: CustomerRole | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == CustomerRole.ADMIN

    @property
    def is_authenticated(self) -> bool:
        return self.caller_id is not None


async def get_services() -> ShopServices:
    """Get the service container over the global store handle."""
    state_manager = await get_state_manager()
    return ShopServices.build(state_manager)


async def get_caller(
    x_caller_id: str | None = Header(default=None),
    x_caller_role: str | None = Header(default=None),
) -> Caller:
    role = None
    if x_caller_role:
        try:
            role = CustomerRole(x_caller_role.lower())
        except ValueError:
            raise Unauthorized("Unknown caller role", {"role": x_caller_role}) from None
    return Caller(caller_id=x_caller_id or None, role=role)


async def require_customer(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_authenticated:
        raise Unauthorized("Authentication required")
    return caller


async def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_authenticated:
        raise Unauthorized("Authentication required")
    if not caller.is_admin:
        raise Forbidden("Admin access required")
    return caller
