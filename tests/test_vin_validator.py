from __future__ import annotations

import pytest

from asset_intake.core.errors import MalformedVinError
from asset_intake.vin import compute_check_digit, is_valid_vin, normalize_vin, validate

REFERENCE_VIN = "1HGBH41JXMN109186"


def test_reference_vin_passes():
    result = validate(REFERENCE_VIN)
    assert result.passed is True
    assert result.normalized == REFERENCE_VIN
    assert result.errors == []
    assert compute_check_digit(REFERENCE_VIN) == "X"


def test_all_ones_vin_passes():
    # weights sum to 89, 89 mod 11 == 1
    assert is_valid_vin("11111111111111111")


def test_lowercase_and_separators_are_normalized():
    result = validate(" 1hgbh41jxmn-109186 ")
    assert result.passed is True
    assert result.normalized == REFERENCE_VIN


def test_single_character_mutation_fails():
    mutated = REFERENCE_VIN[:16] + "7"
    result = validate(mutated)
    assert result.passed is False
    assert result.errors == ["Check digit mismatch: expected 1, got X"]


def test_every_digit_mutation_at_weighted_positions_fails():
    for i, char in enumerate(REFERENCE_VIN):
        if i == 8 or not char.isdigit():
            continue
        replacement = str((int(char) + 1) % 10)
        mutated = REFERENCE_VIN[:i] + replacement + REFERENCE_VIN[i + 1:]
        assert not is_valid_vin(mutated), mutated


def _iso_values() -> dict:
    values = {str(d): d for d in range(10)}
    for letters, start in (("ABCDEFGH", 1), ("JKLMN", 1), ("P", 7), ("R", 9), ("STUVWXYZ", 2)):
        for offset, letter in enumerate(letters):
            values[letter] = start + offset
    return values


def test_every_single_character_mutation_fails_unless_value_is_unchanged():
    values = _iso_values()
    coincidental = set()
    for i, original in enumerate(REFERENCE_VIN):
        for replacement in values:
            if replacement == original:
                continue
            mutated = REFERENCE_VIN[:i] + replacement + REFERENCE_VIN[i + 1:]
            # position 9 is the check digit itself; elsewhere an equal value leaves the sum unchanged
            same_sum = i != 8 and values[replacement] == values[original]
            assert is_valid_vin(mutated) is same_sum, mutated
            if same_sum:
                coincidental.add(mutated)
    assert "AHGBH41JXMN109186" in coincidental


@pytest.mark.parametrize("letter", ["I", "O", "Q"])
def test_mutation_to_excluded_letter_fails(letter: str):
    for i in range(len(REFERENCE_VIN)):
        mutated = REFERENCE_VIN[:i] + letter + REFERENCE_VIN[i + 1:]
        assert not is_valid_vin(mutated), mutated


def test_wrong_length_reports_count():
    result = validate(REFERENCE_VIN[:16])
    assert result.passed is False
    assert result.errors == ["VIN must be 17 characters (got 16)"]


def test_illegal_letters_are_stripped_before_length_check():
    # I, O and Q never appear in a VIN
    assert normalize_vin("1HGBH41JXMN10918O6") == REFERENCE_VIN
    result = validate("IHGBH41JXMN109186")
    assert result.passed is False
    assert result.normalized == "HGBH41JXMN109186"
    assert "got 16" in result.errors[0]


def test_non_string_input():
    result = validate(None)
    assert result.passed is False
    assert result.errors == ["VIN must be a string"]


def test_validate_is_deterministic():
    samples = [REFERENCE_VIN, "11111111111111111", "1HGBH41JXMN1091B6", "ABC"]
    for sample in samples:
        assert validate(sample) == validate(sample)


def test_compute_check_digit_rejects_malformed():
    with pytest.raises(MalformedVinError, match="17 characters"):
        compute_check_digit("1HG")
    with pytest.raises(MalformedVinError, match="position 1"):
        compute_check_digit("IHGBH41JXMN109186")
