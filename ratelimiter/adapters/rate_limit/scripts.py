"""Redis Lua scripts for the rate limiting algorithms.

Redis runs each script as a single indivisible step, so the read-modify-write
sequences below cannot interleave with other callers touching the same key.
Timestamps are integer milliseconds passed in by the caller; the store clock
is never consulted.

A key holding a value of the wrong Redis type, or a value that does not
parse, is treated as absent: the identifier starts fresh instead of failing
every subsequent check.
"""

# Returns the Redis type name of KEYS[1] ('none' when absent). TYPE is a
# status reply, which Lua receives as {ok = name}.
_KEY_TYPE = """
local function key_type(key)
    local reply = redis.call('TYPE', key)
    if type(reply) == 'table' then
        return reply['ok']
    end
    return reply
end
"""

# Sliding window log.
# KEYS[1] = sorted set of request timestamps
# ARGV = now_ms, window_ms, limit, window_seconds, member
# Returns {allowed, current, oldest_score or ''}
SLIDING_WINDOW_SCRIPT = _KEY_TYPE + """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window_ms = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
local window_seconds = tonumber(ARGV[4])
local member = ARGV[5]

local existing = key_type(key)
if existing ~= 'none' and existing ~= 'zset' then
    redis.call('DEL', key)
end

redis.call('ZREMRANGEBYSCORE', key, '-inf', '(' .. (now - window_ms))

local count = redis.call('ZCARD', key)
local allowed = 0
if count < limit then
    redis.call('ZADD', key, now, member)
    count = count + 1
    allowed = 1
end

redis.call('EXPIRE', key, window_seconds)

local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
local oldest_score = ''
if #oldest >= 2 then
    oldest_score = oldest[2]
end

return {allowed, count, oldest_score}
"""

# Leaky bucket gauge.
# KEYS[1] = "<level>:<last_leak_ms>" string
# ARGV = now_ms, limit, leak_rate (per second), ttl_seconds
# Returns {allowed, level as string}; a number reply would be truncated to
# an integer by Redis.
LEAKY_BUCKET_SCRIPT = _KEY_TYPE + """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local limit = tonumber(ARGV[2])
local leak_rate = tonumber(ARGV[3])
local ttl = tonumber(ARGV[4])

local level = 0
local last_leak = now

if key_type(key) == 'string' then
    local data = redis.call('GET', key)
    local raw_level, raw_last = string.match(data, '^([^:]+):([^:]+)$')
    if raw_level then
        local parsed_level = tonumber(raw_level)
        local parsed_last = tonumber(raw_last)
        if parsed_level and parsed_last and parsed_level >= 0 then
            level = parsed_level
            last_leak = parsed_last
        end
    end
end

-- a timestamp from a skewed clock ahead of ours never refills the bucket
local elapsed = math.max(0, now - last_leak) / 1000
level = math.max(0, level - elapsed * leak_rate)

-- admit only while one more unit fits, so the level never exceeds limit
local allowed = 0
if level + 1 <= limit then
    level = level + 1
    allowed = 1
end

-- %.17g keeps a level just under an integer from rounding up to it
local encoded = string.format('%.17g', level)
redis.call('SET', key, encoded .. ':' .. ARGV[1], 'EX', ttl)

return {allowed, encoded}
"""
