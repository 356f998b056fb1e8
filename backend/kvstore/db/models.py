"""
Store Table Definitions

Every logical table namespace maps to one physical table:

    id      auto-increment primary key, gives insertion order
    key     unique record key
    value   opaque bytes
    expiry  Unix milliseconds, 0 when the record never expires
"""

from sqlalchemy import BigInteger, Column, Integer, LargeBinary, MetaData, String, Table


def store_table(metadata: MetaData, name: str) -> Table:
    """
    Get (or define) the table for a logical table namespace

    Args:
        metadata: MetaData collecting the store's tables
        name: Table name

    Returns:
        Table: Table bound to ``metadata``
    """
    existing = metadata.tables.get(name)
    if existing is not None:
        return existing

    return Table(
        name,
        metadata,
        # SQLite only auto-increments INTEGER PRIMARY KEY columns
        Column(
            "id",
            BigInteger().with_variant(Integer, "sqlite"),
            primary_key=True,
            autoincrement=True,
        ),
        Column("key", String(255), nullable=False, unique=True),
        Column("value", LargeBinary, nullable=False),
        Column("expiry", BigInteger, nullable=False, default=0),
    )
