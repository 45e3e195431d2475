"""
Database package for cctracker.

Provides the single long-lived aiosqlite connection and schema management.

Public API:
    - db_connection: Global ConnectionManager instance
    - Database: Opens the connection and creates the schema
"""
