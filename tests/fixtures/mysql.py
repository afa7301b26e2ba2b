"""MySQL / MariaDB fixtures.

The server is taken from the environment; tests using these fixtures are
skipped when nothing is listening there.
"""

from __future__ import annotations

import os
import socket

import pytest

MYSQL_HOST = os.environ.get("MYSQL_HOST", "localhost")
MYSQL_PORT = int(os.environ.get("MYSQL_PORT", "3306"))
MYSQL_USER = os.environ.get("MYSQL_USER", "root")
MYSQL_PASSWORD = os.environ.get("MYSQL_PASSWORD", "")
MYSQL_DATABASE = os.environ.get("MYSQL_DATABASE", "tuidb_test")


def is_port_open(host: str, port: int, timeout: float = 1.0) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def mysql_dsn(database: str = "") -> str:
    password = f":{MYSQL_PASSWORD}" if MYSQL_PASSWORD else ""
    return f"mysql://{MYSQL_USER}{password}@{MYSQL_HOST}:{MYSQL_PORT}/{database}"


@pytest.fixture(scope="session")
def mysql_server_ready() -> bool:
    return is_port_open(MYSQL_HOST, MYSQL_PORT)


@pytest.fixture
def mysql_db(mysql_server_ready: bool) -> str:
    """Create a fresh test schema with a users table. Returns its name."""
    if not mysql_server_ready:
        pytest.skip("MySQL is not available")

    import mysql.connector

    try:
        conn = mysql.connector.connect(
            host=MYSQL_HOST,
            port=MYSQL_PORT,
            user=MYSQL_USER,
            password=MYSQL_PASSWORD,
            autocommit=True,
        )
    except mysql.connector.Error as e:
        pytest.skip(f"MySQL refused the test login: {e}")

    cursor = conn.cursor()
    cursor.execute(f"DROP DATABASE IF EXISTS `{MYSQL_DATABASE}`")
    cursor.execute(f"CREATE DATABASE `{MYSQL_DATABASE}`")
    cursor.execute(f"USE `{MYSQL_DATABASE}`")
    cursor.execute("CREATE TABLE users (id INT PRIMARY KEY AUTO_INCREMENT, name VARCHAR(40) NOT NULL, age INT)")
    cursor.execute("INSERT INTO users (name, age) VALUES ('ada', 36), ('bob', NULL), ('cy', 41)")
    cursor.execute("CREATE TABLE log (msg VARCHAR(10), level INT)")
    cursor.execute("INSERT INTO log VALUES ('a', 1), ('a', 1), ('b', 2)")
    cursor.close()

    yield MYSQL_DATABASE

    cursor = conn.cursor()
    cursor.execute(f"DROP DATABASE IF EXISTS `{MYSQL_DATABASE}`")
    cursor.close()
    conn.close()
