"""
Database connection management.

Provides the SQLite connection behind the key/value stores.
"""

import sqlite3
from pathlib import Path


def get_connection(db_path: str = ".prd-forge.db") -> sqlite3.Connection:
    """Create and return a SQLite connection to the key/value database.
    
    Args:
        db_path: Path to SQLite database file
        
    Returns:
        SQLite connection with a short busy timeout
    """
    path = Path(db_path)
    conn = sqlite3.connect(str(path), timeout=5.0)
    return conn
