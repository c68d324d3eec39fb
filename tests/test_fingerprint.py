"""
Tests for content fingerprinting.

Covers identity stability across dates, change sensitivity on every
field, cell coercion and both hash strategies.
"""

import random
import string
from datetime import date, datetime

import pytest

from alerttracker.domain.fingerprint import (
    HASH_STRATEGIES,
    Fingerprinter,
    blake2b64,
    coerce_field,
    get_strategy,
    rolling32,
    row_hash,
    thread_key,
    to_base36,
)
from alerttracker.domain.models import ExternalRecord

from conftest import make_record

ALGORITHMS = sorted(HASH_STRATEGIES)


def _random_text(rng: random.Random, max_len: int = 24) -> str:
    alphabet = string.ascii_letters + string.digits + " &/-_.,'"
    return "".join(rng.choice(alphabet) for _ in range(rng.randint(1, max_len)))


def _random_record(rng: random.Random) -> ExternalRecord:
    return ExternalRecord(
        source_row=rng.randint(2, 500),
        date=datetime(2026, rng.randint(1, 12), rng.randint(1, 28)),
        product=_random_text(rng),
        workflow=_random_text(rng),
        issue=_random_text(rng, 60),
        request=_random_text(rng, 60),
        comment=_random_text(rng, 80),
        resolved=rng.random() < 0.5,
    )


class TestBase36:
    def test_known_values(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"
        assert to_base36(97) == "2p"

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_base36(-1)


class TestRolling32:
    def test_known_values(self):
        assert rolling32("") == "0"
        assert rolling32("a") == "2p"
        assert rolling32("ab") == "2e9"

    def test_result_fits_signed_32_bit(self):
        rng = random.Random(7)
        for _ in range(200):
            value = int(rolling32(_random_text(rng, 200)), 36)
            assert 0 <= value <= 2**31

    def test_non_bmp_characters_use_utf16_units(self):
        # Astral characters are two code units; distinct from their BMP halves
        assert rolling32("😀") != rolling32("é")


class TestCoerceField:
    def test_none_is_empty(self):
        assert coerce_field(None) == ""

    def test_bool(self):
        assert coerce_field(True) == "TRUE"
        assert coerce_field(False) == "FALSE"

    def test_midnight_datetime_and_date_agree(self):
        assert coerce_field(datetime(2026, 2, 1)) == "2026-02-01"
        assert coerce_field(date(2026, 2, 1)) == "2026-02-01"

    def test_datetime_with_time(self):
        assert coerce_field(datetime(2026, 2, 1, 9, 30)) == "2026-02-01 09:30:00"

    def test_integral_float(self):
        assert coerce_field(3.0) == "3"
        assert coerce_field(2.5) == "2.5"


@pytest.mark.parametrize("algorithm", ALGORITHMS)
class TestFingerprintProperties:
    def test_thread_key_ignores_date_and_row(self, algorithm):
        r1 = make_record(2, date=datetime(2026, 2, 1))
        r2 = make_record(9, date=datetime(2026, 3, 15), comment="later", resolved=True)
        assert thread_key(r1, algorithm) == thread_key(r2, algorithm)

    def test_row_hash_sees_date(self, algorithm):
        r1 = make_record(date=datetime(2026, 2, 1))
        r2 = make_record(date=datetime(2026, 2, 2))
        assert row_hash(r1, algorithm) != row_hash(r2, algorithm)

    def test_row_hash_ignores_row_position(self, algorithm):
        assert row_hash(make_record(2), algorithm) == row_hash(make_record(40), algorithm)

    def test_total_on_empty_fields(self, algorithm):
        empty = ExternalRecord(source_row=2, date=None)
        assert thread_key(empty, algorithm)
        assert row_hash(empty, algorithm)

    def test_deterministic(self, algorithm):
        fp1, fp2 = Fingerprinter(algorithm), Fingerprinter(algorithm)
        rec = make_record()
        assert fp1.thread_key(rec) == fp2.thread_key(rec) == thread_key(rec, algorithm)
        assert fp1.row_hash(rec) == fp2.row_hash(rec) == row_hash(rec, algorithm)

    def test_single_field_mutation_changes_row_hash(self, algorithm):
        rng = random.Random(20260201)
        fp = Fingerprinter(algorithm)
        text_fields = ("product", "workflow", "issue", "request", "comment")
        for _ in range(300):
            rec = _random_record(rng)
            field_name = rng.choice(text_fields + ("date", "resolved"))
            if field_name == "date":
                mutated = ExternalRecord(**{**rec.__dict__, "date": datetime(2025, 1, 1)})
                if rec.date == mutated.date:
                    continue
            elif field_name == "resolved":
                mutated = ExternalRecord(**{**rec.__dict__, "resolved": not rec.resolved})
            else:
                new_value = getattr(rec, field_name) + rng.choice(string.ascii_letters)
                mutated = ExternalRecord(**{**rec.__dict__, field_name: new_value})
            assert fp.row_hash(rec) != fp.row_hash(mutated), field_name

    def test_identity_mutation_changes_thread_key(self, algorithm):
        rng = random.Random(99)
        fp = Fingerprinter(algorithm)
        for _ in range(300):
            rec = _random_record(rng)
            field_name = rng.choice(("product", "workflow", "issue", "request"))
            mutated = ExternalRecord(
                **{**rec.__dict__, field_name: getattr(rec, field_name) + "x"}
            )
            assert fp.thread_key(rec) != fp.thread_key(mutated), field_name


def test_unknown_algorithm_rejected():
    with pytest.raises(ValueError, match="Unknown fingerprint algorithm"):
        get_strategy("md5")


def test_blake2b64_width():
    assert int(blake2b64("Pixel|W1"), 36) < 2**64
