import json
import logging

import mysql.connector
from mysql.connector import Error

from advocate_query import COLUMNS, ListingPage, build_count_sql, build_select_sql

CREATE_ADVOCATES_TABLE = """
CREATE TABLE IF NOT EXISTS advocates (
    id INT AUTO_INCREMENT PRIMARY KEY,
    first_name VARCHAR(255) NOT NULL,
    last_name VARCHAR(255) NOT NULL,
    city VARCHAR(255) NOT NULL,
    degree VARCHAR(50) NOT NULL,
    specialties JSON NOT NULL,
    years_of_experience INT NOT NULL,
    phone_number VARCHAR(20) NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
) DEFAULT CHARSET=utf8mb4
"""

ADVOCATE_INDEXES = [
    "CREATE INDEX idx_advocates_city ON advocates(city)",
    "CREATE INDEX idx_advocates_degree ON advocates(degree)",
    "CREATE INDEX idx_advocates_experience ON advocates(years_of_experience)",
    "CREATE INDEX idx_advocates_first_name ON advocates(first_name)",
    "CREATE INDEX idx_advocates_last_name ON advocates(last_name)",
    "CREATE INDEX idx_advocates_city_degree ON advocates(city, degree)",
    "CREATE INDEX idx_advocates_experience_first_name ON advocates(years_of_experience, first_name)",
]

INSERT_ADVOCATE = """
INSERT INTO advocates (first_name, last_name, city, degree, specialties, years_of_experience, phone_number)
VALUES (%s, %s, %s, %s, %s, %s, %s)
"""

# MySQL 1061: Duplicate key name
DUPLICATE_INDEX_ERRNO = 1061


class StoreError(Exception):
    """Raised when the advocate store cannot answer a request"""


class StoreNotConfiguredError(StoreError):
    pass


def row_to_record(row):
    """Convert a snake_case advocates row into the camelCase API record"""
    record = {}
    for name, column in COLUMNS.items():
        record[name] = row.get(column)
    specialties = record.get('specialties')
    if isinstance(specialties, (bytes, bytearray)):
        specialties = specialties.decode('utf-8')
    if isinstance(specialties, str):
        specialties = json.loads(specialties) if specialties else []
    record['specialties'] = specialties or []
    if record.get('createdAt') is not None and hasattr(record['createdAt'], 'isoformat'):
        record['createdAt'] = record['createdAt'].isoformat()
    return record


class UnconfiguredStore:
    """Stand-in used when DATABASE_URL is not set; reads go to static data"""

    configured = False
    name = 'unconfigured'

    def init_schema(self):
        return False

    def query(self, listing_query):
        raise StoreNotConfiguredError("Database not configured")

    def fetch_all(self):
        raise StoreNotConfiguredError("Database not configured")

    def bulk_insert(self, records):
        raise StoreNotConfiguredError("Database not configured. Set DATABASE_URL to seed the database.")


class MySQLAdvocateStore:
    """Advocate table access through mysql.connector, one connection per call"""

    configured = True
    name = 'mysql'

    def __init__(self, db_config, connect_timeout=5):
        self.db_config = dict(db_config)
        self.connect_timeout = connect_timeout

    def get_connection(self):
        try:
            return mysql.connector.connect(**self.db_config, connection_timeout=self.connect_timeout)
        except Error as e:
            raise StoreError(f"Error connecting to MySQL: {e}") from e

    def _close(self, connection, cursor):
        try:
            if cursor is not None:
                cursor.close()
            if connection.is_connected():
                connection.close()
        except Error as e:
            logging.debug(f"Error closing MySQL connection: {e}")

    def init_schema(self):
        """Create the advocates table and its indexes if they don't exist"""
        connection = self.get_connection()
        cursor = None
        try:
            cursor = connection.cursor()
            cursor.execute(CREATE_ADVOCATES_TABLE)
            for index_query in ADVOCATE_INDEXES:
                try:
                    cursor.execute(index_query)
                except Error as e:
                    if getattr(e, 'errno', None) != DUPLICATE_INDEX_ERRNO:
                        raise
            connection.commit()
            return True
        except Error as e:
            raise StoreError(f"Error creating advocates table: {e}") from e
        finally:
            self._close(connection, cursor)

    def query(self, listing_query):
        connection = self.get_connection()
        cursor = None
        try:
            cursor = connection.cursor(dictionary=True)
            count_sql, count_params = build_count_sql(listing_query)
            cursor.execute(count_sql, tuple(count_params))
            total = int((cursor.fetchone() or {}).get('total', 0))

            select_sql, select_params = build_select_sql(listing_query)
            cursor.execute(select_sql, tuple(select_params))
            rows = cursor.fetchall() or []
            return ListingPage(
                data=[row_to_record(row) for row in rows],
                total=total,
                page=listing_query.page,
                limit=listing_query.limit,
            )
        except Error as e:
            raise StoreError(f"Error querying advocates: {e}") from e
        finally:
            self._close(connection, cursor)

    def fetch_all(self):
        connection = self.get_connection()
        cursor = None
        try:
            cursor = connection.cursor(dictionary=True)
            cursor.execute(f"SELECT {', '.join(COLUMNS.values())} FROM advocates ORDER BY id ASC")
            return [row_to_record(row) for row in cursor.fetchall() or []]
        except Error as e:
            raise StoreError(f"Error fetching advocates: {e}") from e
        finally:
            self._close(connection, cursor)

    def bulk_insert(self, records):
        """Insert every record in one transaction and return them with ids"""
        connection = self.get_connection()
        cursor = None
        try:
            cursor = connection.cursor()
            inserted = []
            for record in records:
                cursor.execute(INSERT_ADVOCATE, (
                    record['firstName'],
                    record['lastName'],
                    record['city'],
                    record['degree'],
                    json.dumps(record.get('specialties') or []),
                    record['yearsOfExperience'],
                    str(record['phoneNumber']),
                ))
                inserted.append(dict(record, id=cursor.lastrowid))
            connection.commit()
            return inserted
        except Error as e:
            connection.rollback()
            raise StoreError(f"Error seeding advocates: {e}") from e
        finally:
            self._close(connection, cursor)


def create_store(db_config, connect_timeout=5):
    if not db_config:
        logging.warning("DATABASE_URL is not set; serving static advocate data")
        return UnconfiguredStore()
    return MySQLAdvocateStore(db_config, connect_timeout=connect_timeout)
