import string

from keyward.errors import PasswordPolicyError, PasswordRule

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 160

DIGITS = frozenset(string.digits)
LETTERS = frozenset(string.ascii_letters)
SPECIAL_SYMBOLS = frozenset("-_/\\(){}[]|!@#$%^&*+=\"';:<>,.?")


def _count(password: str, allowed: frozenset[str]) -> int:
    return sum(1 for char in password if char in allowed)


def validate_password(password: str) -> None:
    """Validate password meets requirements.

    Rules are checked in order and the first failure wins:
    - At least 8 characters
    - At most 160 characters
    - At least one digit
    - At least one special symbol
    - At least one ASCII letter

    Raises:
        PasswordPolicyError: If password doesn't meet requirements
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        raise PasswordPolicyError(
            PasswordRule.TOO_SHORT, f"Password too short. Minimum size: {PASSWORD_MIN_LENGTH} characters"
        )

    if len(password) > PASSWORD_MAX_LENGTH:
        raise PasswordPolicyError(
            PasswordRule.TOO_LONG, f"Password too long. Maximum size: {PASSWORD_MAX_LENGTH} characters"
        )

    if _count(password, DIGITS) < 1:
        raise PasswordPolicyError(PasswordRule.NOT_ENOUGH_DIGITS, "Password must contain at least one digit")

    if _count(password, SPECIAL_SYMBOLS) < 1:
        raise PasswordPolicyError(
            PasswordRule.NOT_ENOUGH_SYMBOLS, "Password must contain at least one special character"
        )

    if _count(password, LETTERS) < 1:
        raise PasswordPolicyError(PasswordRule.NOT_ENOUGH_LETTERS, "Password must contain at least one letter")
