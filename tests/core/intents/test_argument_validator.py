"""
Tests for argument validation

Tests for the per-action field table, rule checks and widget metadata.
"""

import pytest

from ledgerchat.core.intents import (
    ActionType,
    ArgumentValidator,
    Directory,
    UiHint,
    ValidationRule,
    check_rule,
    parse_positive_number,
    supported_actions,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def directory() -> Directory:
    return Directory.from_mapping({"Alex": "0.0.4515512", "Samir": "0.0.4515513"})


@pytest.fixture
def validator(directory: Directory) -> ArgumentValidator:
    return ArgumentValidator(directory)


# =============================================================================
# Rule Tests
# =============================================================================

class TestRules:
    """Tests for individual validation rules."""

    @pytest.mark.parametrize("value", ["1", "0.5", "1e3", " 42 "])
    def test_positive_number_accepts(self, value):
        assert check_rule(ValidationRule.POSITIVE_NUMBER, value) is None

    @pytest.mark.parametrize("value", ["0", "-5", "abc", "NaN", "Infinity", ""])
    def test_positive_number_rejects(self, value):
        assert check_rule(ValidationRule.POSITIVE_NUMBER, value) == "Please enter a positive number"

    def test_parse_positive_number_is_exact(self):
        assert str(parse_positive_number("0.1")) == "0.1"
        assert parse_positive_number("-0.1") is None

    def test_address_accepts_account_id_and_contact_name(self):
        assert check_rule(ValidationRule.ADDRESS, "0.0.800") is None
        assert check_rule(ValidationRule.ADDRESS, "Alex") is None

    def test_address_rejects_malformed(self):
        assert check_rule(ValidationRule.ADDRESS, "0.0.x") is not None
        assert check_rule(ValidationRule.ADDRESS, "") == "Address is required"

    def test_token_rule(self):
        assert check_rule(ValidationRule.TOKEN_ID, "USDC") is None
        assert check_rule(ValidationRule.TOKEN_ID, "0.0.456858") is None
        assert check_rule(ValidationRule.TOKEN_ID, "usdc") is not None

    def test_topic_rule_only_accepts_entity_ids(self):
        assert check_rule(ValidationRule.TOPIC_ID, "0.0.456") is None
        assert check_rule(ValidationRule.TOPIC_ID, "alerts") == "Enter a valid topic ID (0.0.xxxxx)"


# =============================================================================
# Validator Tests
# =============================================================================

class TestArgumentValidator:
    """Tests for ArgumentValidator.validate."""

    def test_complete_transfer(self, validator: ArgumentValidator):
        result = validator.validate(ActionType.TRANSFER, {"recipient": "Alex", "amount": "5"})

        assert result.complete is True
        assert result.missing == ()

    def test_missing_fields_in_table_order(self, validator: ArgumentValidator):
        result = validator.validate(ActionType.TRANSFER, {})

        assert result.complete is False
        assert result.missing_names == ["recipient", "amount"]
        assert [spec.validation_rule for spec in result.missing] == [
            ValidationRule.REQUIRED,
            ValidationRule.POSITIVE_NUMBER,
        ]
        assert all(spec.error is None for spec in result.missing)

    def test_invalid_value_reported_like_missing(self, validator: ArgumentValidator):
        result = validator.validate(ActionType.TRANSFER, {"recipient": "Alex", "amount": "-3"})

        assert result.missing_names == ["amount"]
        assert result.missing[0].error == "Please enter a positive number"

    def test_invalid_optional_field_is_reported(self, validator: ArgumentValidator):
        result = validator.validate(
            ActionType.TRANSFER,
            {"recipient": "Alex", "amount": "5", "tokenId": "not a token"},
        )

        assert result.missing_names == ["tokenId"]
        assert result.missing[0].error is not None

    def test_blank_optional_field_is_ignored(self, validator: ArgumentValidator):
        result = validator.validate(ActionType.STAKE, {"amount": "10", "validator": "  "})
        assert result.complete is True

    def test_recipient_choices_come_from_contacts(self, validator: ArgumentValidator):
        result = validator.validate(ActionType.TRANSFER, {"amount": "5"})
        recipient = result.missing[0]

        assert recipient.ui_hint == UiHint.CHOICE
        assert [option.value for option in recipient.choices] == ["Alex", "Samir"]
        assert recipient.to_dict()["options"][0]["label"] == "Alex (0.0.4515512)"

    def test_swap_token_choices_disallow_custom(self, validator: ArgumentValidator):
        result = validator.validate(ActionType.SWAP, {"amount": "1"})
        from_token = result.missing[0]

        assert from_token.arg_name == "fromToken"
        assert from_token.allow_custom is False
        assert "HBAR" in [option.value for option in from_token.choices]

    def test_message_uses_textarea(self, validator: ArgumentValidator):
        result = validator.validate(ActionType.SEND_MESSAGE, {"topicId": "0.0.456"})
        message = result.missing[0]

        assert message.ui_hint == UiHint.TEXTAREA
        assert message.to_dict()["rows"] == 2

    def test_action_type_accepts_string(self, validator: ArgumentValidator):
        result = validator.validate("associateToken", {"tokenId": "USDC"})
        assert result.complete is True

    def test_unsupported_action_raises(self, validator: ArgumentValidator):
        with pytest.raises(ValueError):
            validator.validate("bridge", {})

    def test_validation_is_deterministic(self, validator: ArgumentValidator):
        args = {"fromToken": "HBAR", "amount": "x"}
        assert validator.validate(ActionType.SWAP, args) == validator.validate(ActionType.SWAP, args)

    def test_validator_without_directory_has_no_choices(self):
        result = ArgumentValidator().validate(ActionType.TRANSFER, {})
        assert result.missing[0].choices == ()


def test_supported_actions_catalogue():
    catalogue = supported_actions()

    assert set(catalogue) == {action.value for action in ActionType}
    assert catalogue["transfer"]["requiredArgs"] == ["recipient", "amount"]
    assert catalogue["transfer"]["optionalArgs"] == ["tokenId", "memo"]
    assert catalogue["createTopic"]["requiredArgs"] == ["memo"]
