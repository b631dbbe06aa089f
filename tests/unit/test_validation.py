"""Unit tests for definition validation and newline normalization."""

from app.strategies.placeholder_engine.models import (
    ConnectionDefinitions,
    CustomPlaceholder,
    ExternalProperty,
    RegexStep,
)
from app.strategies.placeholder_engine.validation import (
    normalize_custom_placeholders,
    validate_custom_placeholders,
    validate_definitions,
    validate_external_properties,
)


def placeholder(name: str, pattern: str = "a", **kwargs) -> CustomPlaceholder:
    return CustomPlaceholder(
        reference_name=name,
        source_placeholder=kwargs.pop("source", "title"),
        steps=[RegexStep(regex_search=pattern, **kwargs)],
    )


class TestCustomPlaceholderValidation:
    def test_valid(self):
        assert validate_custom_placeholders([placeholder("one"), placeholder("two")]).ok

    def test_duplicate_reference_names(self):
        first, second = placeholder("same"), placeholder("same")
        result = validate_custom_placeholders([first, second])

        duplicates = [i for i in result.issues if i.code == "DUPLICATE"]
        assert {i.definition_id for i in duplicates} == {first.id, second.id}
        assert duplicates[0].field == "customPlaceholders[0].referenceName"

    def test_required_fields(self):
        empty = CustomPlaceholder()
        result = validate_custom_placeholders([empty])

        assert not result.ok
        assert {i.field for i in result.issues} == {
            "customPlaceholders[0].referenceName",
            "customPlaceholders[0].sourcePlaceholder",
            "customPlaceholders[0].steps",
        }
        assert {i.code for i in result.issues} == {"REQUIRED"}

    def test_invalid_pattern_points_at_step(self):
        result = validate_custom_placeholders([placeholder("ok"), placeholder("bad", pattern="(")])

        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.code == "INVALID_PATTERN"
        assert issue.field == "customPlaceholders[1].steps[0].regexSearch"

    def test_invalid_flags(self):
        result = validate_custom_placeholders([placeholder("bad", regex_search_flags="gq")])
        assert [i.code for i in result.issues] == ["INVALID_PATTERN"]


class TestExternalPropertyValidation:
    def test_valid(self):
        prop = ExternalProperty(source_field="link", css_selector="img.hero::attr(src)", label="image")
        assert validate_external_properties([prop]).ok

    def test_invalid_selector(self):
        prop = ExternalProperty(source_field="link", css_selector="div[", label="broken")
        result = validate_external_properties([prop])
        assert [i.code for i in result.issues] == ["INVALID_SELECTOR"]
        assert result.issues[0].field == "externalProperties[0].cssSelector"

    def test_duplicate_labels_and_required(self):
        props = [
            ExternalProperty(source_field="link", css_selector="h1", label="title"),
            ExternalProperty(source_field="link", css_selector="h2", label="title"),
            ExternalProperty(css_selector="h3", label="other"),
        ]
        result = validate_external_properties(props)
        assert sorted(i.code for i in result.issues) == ["DUPLICATE", "DUPLICATE", "REQUIRED"]

    def test_whole_definition_set(self):
        definitions = ConnectionDefinitions(
            custom_placeholders=[placeholder("x", pattern="[")],
            external_properties=[ExternalProperty(source_field="link", css_selector="p[", label="y")],
        )
        result = validate_definitions(definitions)
        assert {i.code for i in result.issues} == {"INVALID_PATTERN", "INVALID_SELECTOR"}


class TestNewlineNormalization:
    def test_new_pattern_is_unescaped(self):
        [result] = normalize_custom_placeholders([placeholder("x", pattern="a\\nb")])
        assert result.steps[0].regex_search == "a\nb"

    def test_unchanged_stored_pattern_is_left_alone(self):
        stored = placeholder("x", pattern="a\\nb")
        [result] = normalize_custom_placeholders([stored], baseline=[stored])
        assert result.steps[0].regex_search == "a\\nb"

    def test_edited_pattern_is_unescaped(self):
        stored = placeholder("x", pattern="old")
        edited = stored.model_copy(deep=True)
        edited.steps[0].regex_search = "new\\n"
        [result] = normalize_custom_placeholders([edited], baseline=[stored])
        assert result.steps[0].regex_search == "new\n"

    def test_input_not_mutated(self):
        incoming = placeholder("x", pattern="a\\nb")
        normalize_custom_placeholders([incoming])
        assert incoming.steps[0].regex_search == "a\\nb"
