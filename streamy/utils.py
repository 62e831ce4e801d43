"""
Utility functions for ID generation
"""
import random
import string


def generate_session_id(length: int = 20) -> str:
    """Generate a random opaque session ID"""
    alphabet = string.ascii_letters + string.digits + "_-"
    return "".join(random.choice(alphabet) for _ in range(length))
