"""Security utilities for API key management.

Provides secure key generation, hashing, and verification for API keys.
Uses cryptographically secure random generation and bcrypt for hashing.
"""

import secrets

import bcrypt

from credentials.domain.value_objects import Environment

DEFAULT_KEY_PREFIX = "wd"
RANDOM_PART_BYTES = 16  # 32 hex characters
PREFIX_LENGTH = 12
DEFAULT_BCRYPT_ROUNDS = 12
# bcrypt only considers the first 72 bytes of input
MAX_KEY_LENGTH = 72


def environment_marker(environment: Environment, key_prefix: str = DEFAULT_KEY_PREFIX) -> str:
    """Literal start of every key in an environment, e.g. ``wd_live_``."""
    return f"{key_prefix}_{environment.value}_"


def generate_api_key(
    environment: Environment | str, key_prefix: str = DEFAULT_KEY_PREFIX
) -> str:
    """Generate a plaintext API key of the form ``<prefix>_<env>_<32 hex>``.

    The environment marker lets secret scanners recognise the key and lets
    validation search only the matching pool.

    Raises:
        ValueError: If environment is not live or test
    """
    env = Environment(environment)
    return f"{environment_marker(env, key_prefix)}{secrets.token_hex(RANDOM_PART_BYTES)}"


def environment_of(plaintext: str, key_prefix: str = DEFAULT_KEY_PREFIX) -> Environment | None:
    """Return the environment encoded in a key, or None if it has no known marker."""
    for env in Environment:
        if plaintext.startswith(environment_marker(env, key_prefix)):
            return env
    return None


def extract_prefix(plaintext: str) -> str:
    """Extract the first 12 characters as a display-safe prefix.

    Args:
        plaintext: The full API key

    Returns:
        The first 12 characters of the key
    """
    return plaintext[:PREFIX_LENGTH]


def hash_api_key(plaintext: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    """Hash an API key using bcrypt with the given cost factor.

    Args:
        plaintext: The plaintext API key to hash
        rounds: bcrypt work factor (log2 iterations)

    Returns:
        The bcrypt hash as a string
    """
    return bcrypt.hashpw(plaintext.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_api_key(plaintext: str, key_hash: str) -> bool:
    """Verify a key against its hash using bcrypt's constant-time comparison.

    Returns:
        True if the key matches the hash, False otherwise
    """
    try:
        return bcrypt.checkpw(plaintext.encode(), key_hash.encode())
    except ValueError:
        # Malformed hash or over-long input
        return False
