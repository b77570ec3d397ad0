"""Tests for checksum and hashing helpers."""

from aitriage.privacy.validators import chunk_by_paragraph, fnv1a_hex, iban_valid, luhn_valid


class TestLuhn:
    def test_valid_card(self):
        assert luhn_valid("4242424242424242")

    def test_separators_ignored(self):
        assert luhn_valid("4242 4242 4242 4242")
        assert luhn_valid("4242-4242-4242-4242")

    def test_bad_checksum(self):
        assert not luhn_valid("4242424242424241")

    def test_length_bounds(self):
        # 79927398713 passes the checksum but is too short for a card
        assert not luhn_valid("79927398713")
        assert not luhn_valid("4" * 20)

    def test_empty(self):
        assert not luhn_valid("")


class TestIban:
    def test_valid(self):
        assert iban_valid("GB82WEST12345698765432")
        assert iban_valid("DE89370400440532013000")

    def test_spaces_and_case(self):
        assert iban_valid("gb82 west 1234 5698 7654 32")

    def test_bad_checksum(self):
        assert not iban_valid("GB82WEST12345698765433")

    def test_bad_shape(self):
        assert not iban_valid("GB82")
        assert not iban_valid("1234WEST12345698765432")


class TestFnv1a:
    def test_known_values(self):
        assert fnv1a_hex("") == "811c9dc5"
        assert fnv1a_hex("a") == "e40c292c"

    def test_format(self):
        digest = fnv1a_hex("sk-some-secret-value")
        assert len(digest) == 8
        assert digest == digest.lower()
        assert digest == fnv1a_hex("sk-some-secret-value")


class TestChunkByParagraph:
    def test_splits_on_blank_lines(self):
        assert chunk_by_paragraph("a\n\nb\n\n\nc") == ["a", "b", "c"]

    def test_single_newline_kept(self):
        assert chunk_by_paragraph("line one\nline two") == ["line one\nline two"]

    def test_long_paragraph_sliced(self):
        assert chunk_by_paragraph("x" * 10, max_chars=4) == ["xxxx", "xxxx", "xx"]
