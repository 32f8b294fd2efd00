# Models package
from .user import User
from .library import Program, Ebook, DEFAULT_PROGRAM_COLOR

__all__ = [
    # User models
    "User",
    # Catalog models
    "Program",
    "Ebook",
    "DEFAULT_PROGRAM_COLOR",
]
