"""Redis tooling package: connection wrapper and key configuration.

Modules
-------
- client: RedisKV wrapper (URL or host/port envs, namespaced keys)
- config: key builders for records and delivery leases
"""

from .client import RedisKV  # noqa: F401
