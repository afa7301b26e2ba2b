"""MariaDB adapter.

MariaDB speaks the MySQL wire protocol, so it uses mysql-connector-python as
well. The native ``mariadb`` package needs MariaDB Connector/C on the host,
which is not available on most systems that already have a MySQL client.
"""

from __future__ import annotations

from .mysql import MySQLAdapter


class MariaDBAdapter(MySQLAdapter):
    """Adapter for MariaDB over the MySQL protocol."""

    @property
    def name(self) -> str:
        return "MariaDB"
