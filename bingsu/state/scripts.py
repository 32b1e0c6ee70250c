"""Lua scripts for the conditional updates that must be atomic in Redis.

Each script checks and writes in one server-side step, so concurrent orders
cannot both pass a check that only one of them should. Scripts return a
status integer first: 1 for success, negative values for the failure kinds
listed next to each script. Timestamps are passed in as epoch seconds.
"""

# KEYS: item  ARGV: delta
# -1 missing, -2 result would be negative (second value is current quantity)
ADJUST_STOCK = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return {-1, 0}
end
local qty = tonumber(redis.call('HGET', KEYS[1], 'quantity'))
local delta = tonumber(ARGV[1])
if qty + delta < 0 then
  return {-2, qty}
end
if delta > 0 and ARGV[2] then
  redis.call('HSET', KEYS[1], 'last_restocked_at', ARGV[2])
end
return {1, redis.call('HINCRBY', KEYS[1], 'quantity', delta)}
"""

# KEYS: item, index  ARGV: amount, now, category, name, threshold, unit, member
INCREMENT_STOCK = """
local amount = tonumber(ARGV[1])
if redis.call('EXISTS', KEYS[1]) == 0 then
  redis.call('HSET', KEYS[1],
    'category', ARGV[3], 'name', ARGV[4], 'quantity', amount,
    'reorder_threshold', ARGV[5], 'active', '1', 'unit', ARGV[6],
    'last_restocked_at', ARGV[2], 'created_at', ARGV[2])
  redis.call('SADD', KEYS[2], ARGV[7])
  return amount
end
redis.call('HSET', KEYS[1], 'last_restocked_at', ARGV[2])
return redis.call('HINCRBY', KEYS[1], 'quantity', amount)
"""

# KEYS: item  ARGV: now
# -1 missing
RESTOCK_TO_THRESHOLD = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return {-1, 0}
end
local threshold = tonumber(redis.call('HGET', KEYS[1], 'reorder_threshold'))
redis.call('HSET', KEYS[1], 'last_restocked_at', ARGV[1])
return {1, redis.call('HINCRBY', KEYS[1], 'quantity', threshold)}
"""

# KEYS: code, index  ARGV: code, cup_size, max_usage, created_by, created_at, expires_at
# 0 when the code already exists
CREATE_CODE = """
if redis.call('EXISTS', KEYS[1]) == 1 then
  return 0
end
redis.call('HSET', KEYS[1],
  'code', ARGV[1], 'cup_size', ARGV[2], 'usage_count', 0,
  'max_usage', ARGV[3], 'created_by', ARGV[4],
  'created_at', ARGV[5], 'expires_at', ARGV[6])
redis.call('ZADD', KEYS[2], ARGV[5], ARGV[1])
return 1
"""

# KEYS: code, used_by  ARGV: now, usage entry
# -1 missing, -2 expired, -3 usage limit reached (second value is max_usage)
REDEEM_CODE = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return {-1, 0}
end
local expires = tonumber(redis.call('HGET', KEYS[1], 'expires_at'))
if expires <= tonumber(ARGV[1]) then
  return {-2, 0}
end
local used = tonumber(redis.call('HGET', KEYS[1], 'usage_count'))
local max = tonumber(redis.call('HGET', KEYS[1], 'max_usage'))
if used >= max then
  return {-3, max}
end
redis.call('RPUSH', KEYS[2], ARGV[2])
return {1, redis.call('HINCRBY', KEYS[1], 'usage_count', 1)}
"""

# KEYS: code, used_by  ARGV: usage entry
RELEASE_CODE = """
local removed = redis.call('LREM', KEYS[2], 1, ARGV[1])
if removed > 0 then
  redis.call('HINCRBY', KEYS[1], 'usage_count', -1)
end
return removed
"""

# KEYS: code, used_by, index  ARGV: now, code
CLEANUP_CODE = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  redis.call('ZREM', KEYS[3], ARGV[2])
  return 0
end
local used = tonumber(redis.call('HGET', KEYS[1], 'usage_count'))
local expires = tonumber(redis.call('HGET', KEYS[1], 'expires_at'))
if used == 0 and expires <= tonumber(ARGV[1]) then
  redis.call('DEL', KEYS[1], KEYS[2])
  redis.call('ZREM', KEYS[3], ARGV[2])
  return 1
end
return 0
"""

# KEYS: customer  ARGV: threshold, order_total, points_divisor
# -1 missing; otherwise {1, earned_free, stamp_count, points_awarded}
RECORD_STAMP = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return {-1, 0, 0, 0}
end
local threshold = tonumber(ARGV[1])
local stamps = tonumber(redis.call('HGET', KEYS[1], 'stamp_count') or '0') + 1
local total = tonumber(ARGV[2])
local earned = 0
if stamps >= threshold then
  stamps = 0
  earned = 1
  total = 0
  redis.call('HINCRBY', KEYS[1], 'total_free_redemptions', 1)
end
redis.call('HSET', KEYS[1], 'stamp_count', stamps)
local points = math.floor(total / tonumber(ARGV[3]))
redis.call('HINCRBY', KEYS[1], 'reward_points', points)
return {1, earned, stamps, points}
"""

# KEYS: customer  ARGV: earned_free, points_awarded, threshold
REVERT_STAMP = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return 0
end
if tonumber(ARGV[1]) == 1 then
  redis.call('HINCRBY', KEYS[1], 'stamp_count', tonumber(ARGV[3]) - 1)
  redis.call('HINCRBY', KEYS[1], 'total_free_redemptions', -1)
else
  local stamps = tonumber(redis.call('HGET', KEYS[1], 'stamp_count') or '0')
  if stamps > 0 then
    redis.call('HINCRBY', KEYS[1], 'stamp_count', -1)
  end
end
redis.call('HINCRBY', KEYS[1], 'reward_points', -tonumber(ARGV[2]))
return 1
"""
