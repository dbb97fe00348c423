"""Example: awaredb against a MySQL server.

Needs the mysql extra:
    pip install awaredb[mysql]

Then run:
    AWAREDB_DSN="mysql:host=127.0.0.1;dbname=test" AWAREDB_USER=root python example.py

Set AWAREDB_TRACE_QUERIES=1 to log every executed statement with its values
in place.
"""

import logging
import os

import awaredb


def main():
    logging.basicConfig(level=logging.INFO)

    dsn = os.environ.get("AWAREDB_DSN", "mysql:host=127.0.0.1;dbname=test")
    conn = awaredb.connect(dsn, os.environ.get("AWAREDB_USER", "root"), os.environ.get("AWAREDB_PASSWORD", ""))

    conn.exec("DROP TABLE IF EXISTS fruit")
    conn.exec("""
        CREATE TABLE fruit (
            id   INTEGER PRIMARY KEY AUTO_INCREMENT,
            name VARCHAR(50) NOT NULL
        )
    """)

    insert = conn.prepare("INSERT INTO fruit (name) VALUES (:name)")
    for name in ["apple", "banana", "cherry", "grape", "mango", "papaya"]:
        insert.execute({"name": name})
    conn.commit()

    # Bind by reference: the variable is read again on every execute().
    sth = conn.prepare("SELECT id, name FROM fruit WHERE name LIKE :search ORDER BY id LIMIT 2")
    search = awaredb.Variable()
    sth.bind_param(":search", search)

    for pattern in ["%a%", "%an%", "kiwi"]:
        search.value = pattern
        sth.execute()
        rows = sth.fetch_all()
        print(sth.get_query())
        print(f"  fetched {len(rows)} of {sth.row_count()} matching rows")
        for row in rows:
            print(f"    id={row[0]}  name={row[1]}")

    conn.close()


if __name__ == "__main__":
    main()
