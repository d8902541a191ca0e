import pytest
from clinic_dashboard.sanitizer import DEFAULT_SUBSTITUTIONS, Sanitizer, sanitize

ZWJ = "\u200d"
VS16 = "\ufe0f"
FEMALE = "\u2640"
MALE = "\u2642"


def test_strips_joiners_and_variation_selectors():
    family = ZWJ.join(["\U0001F468", "\U0001F469", "\U0001F467"])
    assert sanitize(family) == "\U0001F468\U0001F469\U0001F467"
    assert sanitize("\u2764" + VS16) == "\u2764"

def test_strips_skin_tones():
    assert sanitize("Hola \U0001F44B\U0001F3FD") == "Hola \U0001F44B"
    assert sanitize("\U0001F44D\U0001F3FB\U0001F44D\U0001F3FF") == "\U0001F44D\U0001F44D"

def test_strips_gender_signs():
    woman_facepalming = "\U0001F926" + ZWJ + FEMALE + VS16
    assert sanitize(woman_facepalming) == "\U0001F926"
    assert sanitize(MALE) == ""

def test_default_downgrades():
    assert sanitize("\U0001F64B") == "\U0001F44B"
    assert sanitize("\u263a" + VS16) == "\U0001F642"
    # raised hand with skin tone and gender collapses to a plain wave
    assert sanitize("\U0001F64B\U0001F3FC" + ZWJ + MALE + VS16) == "\U0001F44B"

def test_normalizes_to_composed_form():
    assert sanitize("Garci\u0301a") == "García"
    # compatibility forms fold as well
    assert sanitize("\uff21 b") == "A b"

def test_plain_text_is_untouched():
    text = "¡Feliz cumpleaños! \U0001F389\U0001F382\n\nCon cariño"
    assert sanitize(text) == text

@pytest.mark.parametrize("text", [
    "",
    "e" + ZWJ + "\u0301",
    "\U0001F64B\U0001F3FB" + ZWJ + FEMALE + VS16 + " hola \u263a",
    "n\U0001F3FD\u0303o",
    "Mañana \U0001F9B7 \U0001F469" + ZWJ + "\u2695" + VS16,
])
def test_idempotent(text):
    once = sanitize(text)
    assert sanitize(once) == once

def test_removal_then_composition_is_stable():
    assert sanitize("e" + ZWJ + "\u0301") == "é"

def test_custom_table_is_data():
    s = Sanitizer({"\U0001F9B7": "\U0001F642"})
    assert s.sanitize("\U0001F9B7") == "\U0001F642"
    # a custom table replaces the defaults
    assert s.sanitize("\U0001F64B") == "\U0001F64B"
    assert s.substitutions == {"\U0001F9B7": "\U0001F642"}

def test_default_table_is_not_mutated_by_instances():
    Sanitizer({"x": "y"})
    assert "x" not in DEFAULT_SUBSTITUTIONS

@pytest.mark.parametrize("table", [
    {"": "a"},
    {"a": ZWJ},
    {"a": "b\U0001F3FB"},
    {"a": "ba"},
    {"a": "b", "c": "xa"},
    {"a": "e\u0301"},
])
def test_rejects_tables_that_break_idempotence(table):
    with pytest.raises(ValueError):
        Sanitizer(table)

def test_replacement_that_forms_a_key_with_its_neighbour():
    s = Sanitizer({"a": "b", "bc": "Z"})
    assert s.sanitize("ac") == "Z"
    assert s.sanitize(s.sanitize("ac")) == "Z"
    assert s.sanitize("xac a") == "xZ b"
