"""Customer directory - profiles and admin user management."""

from uuid import uuid4

from pydantic import ValidationError

from bingsu.config import Settings
from bingsu.errors import NotFound, ValidationFailed
from bingsu.models.common import to_epoch
from bingsu.models.customer import CustomerProfile, CustomerRole
from bingsu.services.base import BaseService, Clock
from bingsu.state.manager import StateManager

INDEX_KEY = "customers:index"


def customer_key(customer_id: str) -> str:
    return f"customer:{customer_id}"


class CustomerDirectory(BaseService):
    """Stores customer profiles; the loyalty card lives in the same hash."""

    def __init__(
        self,
        state: StateManager,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        super().__init__("customer_directory", state, settings, clock)

    async def register(
        self,
        name: str,
        email: str | None = None,
        role: CustomerRole = CustomerRole.CUSTOMER,
    ) -> CustomerProfile:
        if not name or not name.strip():
            raise ValidationFailed("Name is required", {"name": "must not be empty"})

        try:
            profile = CustomerProfile(
                customer_id=uuid4().hex,
                name=name.strip(),
                email=email,
                role=role,
                created_at=self.now(),
            )
        except ValidationError as e:
            raise ValidationFailed(
                "Invalid customer profile",
                {".".join(str(p) for p in err["loc"]): err["msg"] for err in e.errors()},
            ) from e

        await self.state.hset(
            customer_key(profile.customer_id),
            {
                "customer_id": profile.customer_id,
                "name": profile.name,
                "email": profile.email or "",
                "role": profile.role.value,
                "is_active": "1",
                "stamp_count": 0,
                "total_free_redemptions": 0,
                "reward_points": 0,
                "created_at": to_epoch(profile.created_at),
            },
        )
        await self.state.sadd(INDEX_KEY, profile.customer_id)

        self.logger.log_operation("register", customer_id=profile.customer_id, role=profile.role.value)
        return profile

    async def get(self, customer_id: str) -> CustomerProfile:
        data = await self.state.hgetall(customer_key(customer_id))
        if not data:
            raise NotFound("Customer not found", {"customer_id": customer_id})
        return CustomerProfile.from_hash(data)

    async def list_customers(self) -> list[CustomerProfile]:
        ids = sorted(await self.state.smembers(INDEX_KEY))
        hashes = await self.state.hgetall_many([customer_key(i) for i in ids])
        profiles = [CustomerProfile.from_hash(data) for data in hashes if data]
        return sorted(profiles, key=lambda p: p.created_at)

    async def set_role(self, customer_id: str, role: CustomerRole) -> CustomerProfile:
        await self.get(customer_id)
        await self.state.hset(customer_key(customer_id), {"role": CustomerRole(role).value})

        self.logger.log_operation("set_role", customer_id=customer_id, role=CustomerRole(role).value)
        return await self.get(customer_id)

    async def set_active(self, customer_id: str, active: bool) -> CustomerProfile:
        await self.get(customer_id)
        await self.state.hset(customer_key(customer_id), {"is_active": "1" if active else "0"})

        self.logger.log_operation("set_active", customer_id=customer_id, active=active)
        return await self.get(customer_id)
