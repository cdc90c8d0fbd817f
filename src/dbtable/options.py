from dataclasses import dataclass, fields
from typing import Any

from dbtable.strategy import get_available_dialects, get_strategy_class
from dbtable.strategy import is_supported_dialect

__all__ = [
    'DatabaseOptions',
    'BEST_EFFORT',
    'FAIL_FAST',
]

BEST_EFFORT = 'best_effort'
FAIL_FAST = 'fail_fast'
DDL_POLICIES = (BEST_EFFORT, FAIL_FAST)


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `db2`, `postgresql`, `sqlite`

    `url` overrides the URL the dialect strategy would build, for drivers or
    connection strings the strategies do not model.

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: False)
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)

    DDL options:
    - ddl_policy: `best_effort` logs CREATE/ALTER failures, `fail_fast` raises
    """
    drivername: str = 'db2'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    url: str = None
    check_connection: bool = True
    # Connection pooling parameters
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30
    ddl_policy: str = BEST_EFFORT

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        if self.ddl_policy not in DDL_POLICIES:
            raise ValueError(f'ddl_policy must be one of: {DDL_POLICIES}')
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)

    @classmethod
    def from_any(cls, options: 'DatabaseOptions | dict[str, Any] | None' = None,
                 **kw: Any) -> 'DatabaseOptions':
        """Build options from an instance, a dict, keyword arguments, or a mix;
        keywords win over dict entries. Unknown keys are ignored.
        """
        if isinstance(options, cls) and not kw:
            return options
        names = {f.name for f in fields(cls)}
        if isinstance(options, cls):
            values = {name: getattr(options, name) for name in names}
        else:
            values = dict(options or {})
        values.update(kw)
        return cls(**{k: v for k, v in values.items() if k in names})
