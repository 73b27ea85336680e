"""Library-wide constants.

These constants centralize tunable values used across modules to keep
behavior consistent and avoid duplication.
"""



class Constants:

    # Store password policy
    _MIN_PASSWORD_LENGTH: int = 32
    _MAX_PASSWORD_LENGTH: int = 512
    _ALLOWABLE_ALPHA_UPPER: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    _ALLOWABLE_ALPHA_LOWER: str = "abcdefghijklmnopqrstuvwxyz"
    _ALLOWABLE_DIGITS: str = "0123456789"
    _ALLOWABLE_SPECIAL: str = '!@#$%^&*_+-=[],.?;'

    # Key derivation
    _MIN_ITERATIONS: int = 10_000
    _DEFAULT_ITERATIONS: int = 600_000
    _SALT_SIZE: int = 32

    # Principal naming
    _MAX_PRINCIPAL_LENGTH: int = 128
    _PRINCIPAL_CHARACTERS: str = (
        "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789._@-"
    )

    # Retry policy
    _DEFAULT_MAX_ATTEMPTS: int = 3
    _DEFAULT_BASE_DELAY: float = 0.5  # seconds
    _DEFAULT_MAX_DELAY: float = 8.0  # seconds

    # Rotation policy
    _DEFAULT_MAX_PUBLISH_CYCLES: int = 3  # rotate() calls allowed to retry one mint
    _DEFAULT_LEASE_TTL: int = 300  # seconds
    _DEFAULT_MIN_ROTATION_INTERVAL: int = 60  # seconds
    _DEFAULT_MAX_WORKERS: int = 8
    _MAX_ROTATION_HISTORY: int = 100

    @classmethod
    def MIN_PASSWORD_LENGTH(cls) -> int:
        return cls._MIN_PASSWORD_LENGTH

    @classmethod
    def MAX_PASSWORD_LENGTH(cls) -> int:
        return cls._MAX_PASSWORD_LENGTH

    @classmethod
    def ALLOWABLE_ALPHA_UPPER(cls) -> str:
        return cls._ALLOWABLE_ALPHA_UPPER

    @classmethod
    def ALLOWABLE_ALPHA_LOWER(cls) -> str:
        return cls._ALLOWABLE_ALPHA_LOWER

    @classmethod
    def ALLOWABLE_DIGITS(cls) -> str:
        return cls._ALLOWABLE_DIGITS

    @classmethod
    def ALLOWABLE_SPECIAL(cls) -> str:
        return cls._ALLOWABLE_SPECIAL

    @classmethod
    def MIN_ITERATIONS(cls) -> int:
        return cls._MIN_ITERATIONS

    @classmethod
    def DEFAULT_ITERATIONS(cls) -> int:
        return cls._DEFAULT_ITERATIONS

    @classmethod
    def SALT_SIZE(cls) -> int:
        return cls._SALT_SIZE

    @classmethod
    def MAX_PRINCIPAL_LENGTH(cls) -> int:
        return cls._MAX_PRINCIPAL_LENGTH

    @classmethod
    def PRINCIPAL_CHARACTERS(cls) -> str:
        return cls._PRINCIPAL_CHARACTERS

    # Retry policy
    @classmethod
    def DEFAULT_MAX_ATTEMPTS(cls) -> int:
        return cls._DEFAULT_MAX_ATTEMPTS

    @classmethod
    def DEFAULT_BASE_DELAY(cls) -> float:
        return cls._DEFAULT_BASE_DELAY

    @classmethod
    def DEFAULT_MAX_DELAY(cls) -> float:
        return cls._DEFAULT_MAX_DELAY

    # Rotation policy
    @classmethod
    def DEFAULT_MAX_PUBLISH_CYCLES(cls) -> int:
        return cls._DEFAULT_MAX_PUBLISH_CYCLES

    @classmethod
    def DEFAULT_LEASE_TTL(cls) -> int:
        return cls._DEFAULT_LEASE_TTL

    @classmethod
    def DEFAULT_MIN_ROTATION_INTERVAL(cls) -> int:
        return cls._DEFAULT_MIN_ROTATION_INTERVAL

    @classmethod
    def DEFAULT_MAX_WORKERS(cls) -> int:
        return cls._DEFAULT_MAX_WORKERS

    @classmethod
    def MAX_ROTATION_HISTORY(cls) -> int:
        return cls._MAX_ROTATION_HISTORY
