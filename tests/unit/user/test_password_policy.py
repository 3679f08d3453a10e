"""Tests for password policy."""

import pytest

from keyward.core.modules.user.validators import PASSWORD_MAX_LENGTH, validate_password
from keyward.errors import PasswordPolicyError, PasswordRule, ValidationError


def rule_of(password: str) -> PasswordRule:
    with pytest.raises(PasswordPolicyError) as exc_info:
        validate_password(password)
    return exc_info.value.rule


class TestValidatePassword:
    """Tests for password strength rules."""

    def test_strong_password_accepted(self):
        """Test that a password meeting every rule passes."""
        validate_password("1234abcd!")

    def test_short_password_rejected(self):
        """Test that a password below the minimum length is rejected."""
        assert rule_of("123") == PasswordRule.TOO_SHORT

    def test_exactly_min_length_accepted(self):
        """Test that a password at the minimum length is accepted."""
        validate_password("ab1!ab1!")

    def test_long_password_rejected(self):
        """Test that a password above the maximum length is rejected."""
        assert rule_of("a1!" + "x" * PASSWORD_MAX_LENGTH) == PasswordRule.TOO_LONG

    def test_exactly_max_length_accepted(self):
        """Test that a password at the maximum length is accepted."""
        validate_password("a1!" + "x" * (PASSWORD_MAX_LENGTH - 3))

    def test_letters_only_reports_missing_digits(self):
        """Test that digits are checked before symbols."""
        assert rule_of("abcdefgh") == PasswordRule.NOT_ENOUGH_DIGITS

    def test_missing_symbol_rejected(self):
        """Test that a password without a symbol is rejected."""
        assert rule_of("abcdefg1") == PasswordRule.NOT_ENOUGH_SYMBOLS

    def test_missing_letter_rejected(self):
        """Test that a password without a letter is rejected."""
        assert rule_of("1234567!") == PasswordRule.NOT_ENOUGH_LETTERS

    def test_non_ascii_letters_do_not_count(self):
        """Test that only ASCII letters satisfy the letter rule."""
        assert rule_of("ééééé1!!") == PasswordRule.NOT_ENOUGH_LETTERS

    def test_length_checked_first(self):
        """Test that a short password with no digits reports length."""
        assert rule_of("abc") == PasswordRule.TOO_SHORT

    def test_policy_error_is_validation_error(self):
        """Test that policy failures can be handled as validation errors."""
        with pytest.raises(ValidationError, match="at least one digit"):
            validate_password("abcdefgh")
