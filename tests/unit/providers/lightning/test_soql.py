import pytest

from src.core.exceptions import InvalidIdentifierError
from src.providers.lightning.soql import (
    aura_definitions_query,
    id_list,
    quote_literal,
    validate_id,
)


class TestValidateId:
    @pytest.mark.parametrize("value", ["0Ad000000000001", "0Ad000000000001AAA"])
    def test_valid_ids(self, value):
        assert validate_id(value) == value

    @pytest.mark.parametrize(
        "value",
        ["", "0Ad0001", "0Ad000000000001AAAA", "0Ad00000000000'1", "0Ad000000000001' OR Id != '", None],
    )
    def test_invalid_ids(self, value):
        with pytest.raises(InvalidIdentifierError):
            validate_id(value)


def test_quote_literal_escapes_quotes_and_backslashes():
    assert quote_literal("abc") == "'abc'"
    assert quote_literal("a'b") == "'a\\'b'"
    assert quote_literal("a\\b") == "'a\\\\b'"


def test_id_list():
    assert (
        id_list(["0Ad000000000001AAA", "0Ad000000000002AAA"])
        == "'0Ad000000000001AAA','0Ad000000000002AAA'"
    )


def test_id_list_rejects_injection():
    with pytest.raises(InvalidIdentifierError):
        id_list(["0Ad000000000001AAA", "x') OR Id != ('"])


def test_id_list_rejects_empty():
    with pytest.raises(InvalidIdentifierError):
        id_list([])


def test_aura_definitions_query():
    assert aura_definitions_query() == (
        "SELECT Id, AuraDefinitionBundleId, AuraDefinitionBundle.DeveloperName, "
        "DefType, Format FROM AuraDefinition"
    )
    assert aura_definitions_query(include_source=True, where="Id IN ('x')") == (
        "SELECT Id, AuraDefinitionBundleId, AuraDefinitionBundle.DeveloperName, "
        "DefType, Format, Source FROM AuraDefinition WHERE Id IN ('x')"
    )
