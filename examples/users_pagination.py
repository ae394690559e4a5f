"""
Users Pagination Example

Pages through a users table sorted by last name (missing names first),
then first name, printing each page as a table and walking back again.
"""

import logging

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, insert, select

from seekset import Page, configure

logging.basicConfig(level=logging.INFO)

metadata = MetaData()
users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("first_name", String(50), nullable=False),
    Column("last_name", String(50), nullable=True),
    Column("email", String(100), nullable=False, unique=True),
)

engine = create_engine("sqlite://")
metadata.create_all(engine)

configure(secret="change-me", token_expires_in=3600)

with engine.begin() as conn:
    conn.execute(
        insert(users),
        [
            {"first_name": "John", "last_name": "Doe", "email": "john.doe@email.com"},
            {"first_name": "Jane", "last_name": "Doe", "email": "jane.doe@email.com"},
            {"first_name": "Jane", "last_name": "Smith", "email": "jane.c.smith@email.com"},
            {"first_name": "Rory", "last_name": "Gallagher", "email": "rory@email.com"},
            {"first_name": "Paul", "last_name": None, "email": "paul@domain.com"},
            {"first_name": "George", "last_name": None, "email": "george@domain.com"},
        ],
    )

order = {
    "last_name": {"direction": "desc", "nulls": "first"},
    "first_name": "asc",
}

with engine.connect() as conn:
    page = Page(conn, select(users), order=order, limit=2)

    # Walk forward
    print(page.order.sql(page.dialect))
    print(page.as_table())
    while page.has_next:
        # In a web API the token travels to the client and back
        token = page.next_token
        page = page.at(token)
        print(page.as_table())

    # Walk back
    while page.has_prev:
        page = page.prev_page()
        print(page.as_table())

    print(f"Back at the first page: {page.is_root}")
