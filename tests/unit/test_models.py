"""Unit tests for definition models and their editing operations."""

import pytest
from pydantic import ValidationError

from app.strategies.placeholder_engine.models import (
    ConnectionDefinitions,
    CustomPlaceholder,
    ExternalProperty,
    LowercaseStep,
    RegexStep,
    UppercaseStep,
)


def make_placeholder(name: str = "short", steps=None) -> CustomPlaceholder:
    return CustomPlaceholder(
        reference_name=name,
        source_placeholder="title",
        steps=steps if steps is not None else [RegexStep(regex_search="a", replacement_string="b")],
    )


class TestSerialization:
    """Wire format of definitions."""

    def test_step_without_type_is_regex(self):
        placeholder = CustomPlaceholder.model_validate({
            "referenceName": "short",
            "sourcePlaceholder": "title",
            "steps": [{"id": "s1", "regexSearch": "a", "replacementString": "b"}],
        })
        step = placeholder.steps[0]
        assert isinstance(step, RegexStep)
        assert step.regex_search_flags == "gi"

    def test_step_types_are_discriminated(self):
        placeholder = CustomPlaceholder.model_validate({
            "referenceName": "loud",
            "sourcePlaceholder": "title",
            "steps": [{"type": "UPPERCASE"}, {"type": "LOWERCASE"}],
        })
        assert [type(step) for step in placeholder.steps] == [UppercaseStep, LowercaseStep]

    def test_unknown_step_type_rejected(self):
        with pytest.raises(ValidationError):
            CustomPlaceholder.model_validate({"steps": [{"type": "DATE"}]})

    def test_dump_uses_camel_case(self):
        dumped = make_placeholder().model_dump(by_alias=True)
        assert set(dumped) == {"id", "referenceName", "sourcePlaceholder", "steps"}
        assert dumped["steps"][0]["regexSearchFlags"] == "gi"

    def test_round_trip(self):
        definitions = ConnectionDefinitions(
            custom_placeholders=[make_placeholder()],
            external_properties=[ExternalProperty(source_field="link", css_selector="h1", label="heading")],
        )
        restored = ConnectionDefinitions.model_validate(definitions.model_dump(mode="json", by_alias=True))
        assert restored == definitions

    def test_output_keys(self):
        assert make_placeholder("short").output_key == "custom::short"
        assert ExternalProperty(label="image").output_key == "external::image"

    def test_completeness(self):
        assert make_placeholder().is_complete
        assert not make_placeholder(steps=[]).is_complete
        assert not CustomPlaceholder(reference_name="x").is_complete
        assert not ExternalProperty(source_field="link", label="x").is_complete


class TestEditingOperations:
    """Editing helpers return new copies."""

    @pytest.fixture
    def definitions(self):
        return ConnectionDefinitions(custom_placeholders=[make_placeholder("one"), make_placeholder("two")])

    def test_add_custom_placeholder_defaults_to_one_regex_step(self, definitions):
        updated = definitions.add_custom_placeholder()
        assert len(updated.custom_placeholders) == 3
        assert len(definitions.custom_placeholders) == 2
        added = updated.custom_placeholders[-1]
        assert len(added.steps) == 1
        assert isinstance(added.steps[0], RegexStep)

    def test_remove_custom_placeholder(self, definitions):
        target = definitions.custom_placeholders[0]
        updated = definitions.remove_custom_placeholder(target.id)
        assert [p.reference_name for p in updated.custom_placeholders] == ["two"]

    def test_remove_missing_placeholder(self, definitions):
        with pytest.raises(KeyError):
            definitions.remove_custom_placeholder("nope")

    def test_move_custom_placeholder(self, definitions):
        updated = definitions.move_custom_placeholder(1, 0)
        assert [p.reference_name for p in updated.custom_placeholders] == ["two", "one"]

    def test_move_out_of_range(self, definitions):
        with pytest.raises(IndexError):
            definitions.move_custom_placeholder(0, 5)

    def test_add_and_move_step(self, definitions):
        placeholder_id = definitions.custom_placeholders[0].id
        updated = definitions.add_step(placeholder_id, UppercaseStep())
        steps = updated.custom_placeholders[0].steps
        assert [s.type for s in steps] == ["REGEX", "UPPERCASE"]

        moved = updated.move_step(placeholder_id, 1, 0)
        assert [s.type for s in moved.custom_placeholders[0].steps] == ["UPPERCASE", "REGEX"]
        assert [s.type for s in updated.custom_placeholders[0].steps] == ["REGEX", "UPPERCASE"]

    def test_remove_step(self, definitions):
        placeholder = definitions.custom_placeholders[0]
        updated = definitions.remove_step(placeholder.id, placeholder.steps[0].id)
        assert updated.custom_placeholders[0].steps == []
        assert len(definitions.custom_placeholders[0].steps) == 1

    def test_external_properties(self):
        prop = ExternalProperty(source_field="link", css_selector="h1", label="heading")
        updated = ConnectionDefinitions().add_external_property(prop)
        assert updated.external_properties == [prop]
        assert updated.remove_external_property(prop.id).external_properties == []
        with pytest.raises(KeyError):
            updated.remove_external_property("nope")
