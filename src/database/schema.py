"""WireGuard Mesh Manager - Database Schema

Recreated idempotently on every startup. Any change to the three tables
fires a NOTIFY on CHANNEL.
"""

CHANNEL = "update_server"

TABLES = ("servers", "clients", "connections")

SCHEMA = """
CREATE TABLE IF NOT EXISTS servers (
  name TEXT PRIMARY KEY,
  subnet cidr NOT NULL,
  address inet NOT NULL CHECK(address << subnet),
  public_address inet NOT NULL,
  public_port INT NOT NULL,
  public_key TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS clients (
  name TEXT PRIMARY KEY,
  public_key TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS connections (
  server TEXT REFERENCES servers(name),
  client TEXT REFERENCES clients(name),
  address inet NOT NULL,
  PRIMARY KEY (server, client)
);

CREATE OR REPLACE FUNCTION notify_changes()
  RETURNS trigger
  AS $$
    BEGIN
      NOTIFY {channel};
      RETURN NULL;
    END;
  $$
  LANGUAGE PLPGSQL;
""".format(channel=CHANNEL)

TRIGGER_TEMPLATE = """
DROP TRIGGER IF EXISTS notify_{table}_changed ON public.{table};
CREATE TRIGGER notify_{table}_changed
  AFTER INSERT OR UPDATE OR DELETE OR TRUNCATE
  ON {table}
  EXECUTE FUNCTION notify_changes();
"""


def schema_sql() -> str:
    """Full DDL: tables, notify function and one trigger per table."""
    return SCHEMA + "".join(TRIGGER_TEMPLATE.format(table=table) for table in TABLES)


SELECT_SERVERS = (
    "SELECT name, host(subnet), masklen(subnet), host(address), "
    "host(public_address), public_port, public_key "
    "FROM servers"
)

SELECT_CONNECTIONS = (
    "SELECT server, name, public_key, host(address) "
    "FROM connections "
    "JOIN clients ON client = name"
)

SELECT_SERVER_CONNECTIONS = (
    "SELECT s.name, host(s.subnet), masklen(s.subnet), host(s.address), "
    "host(s.public_address), s.public_port, s.public_key, host(c.address) "
    "FROM connections c "
    "JOIN servers s ON c.server = s.name "
    "WHERE c.client = %s "
    "ORDER BY s.name"
)

SELECT_CLIENT = "SELECT name, public_key FROM clients WHERE name = %s"
