class DatabaseError(Exception):
    """Base exception for database errors"""

    pass
