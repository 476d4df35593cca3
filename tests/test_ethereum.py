"""Tests for Ethereum address format and checksum validation."""

from __future__ import annotations

import pytest

from rainy_day.core.ethereum import is_address, is_checksum_address

CHECKSUMMED = [
    "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed",
    "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359",
    "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB",
    "0xD1220A0cf47c7B9Be7A2E6BA89F429762e7b9aDb",
]


def _flip_case_at(address: str, index: int) -> str:
    char = address[index]
    flipped = char.lower() if char.isupper() else char.upper()
    return address[:index] + flipped + address[index + 1:]


class TestIsAddress:
    @pytest.mark.parametrize("address", CHECKSUMMED)
    def test_checksummed_addresses_pass(self, address: str) -> None:
        assert is_address(address) is True

    @pytest.mark.parametrize("address", CHECKSUMMED)
    def test_lower_and_upper_renderings_pass(self, address: str) -> None:
        body = address[2:]
        assert is_address("0x" + body.lower()) is True
        assert is_address("0x" + body.upper()) is True

    def test_prefix_is_optional(self) -> None:
        assert is_address(CHECKSUMMED[0][2:]) is True

    @pytest.mark.parametrize("address", CHECKSUMMED)
    def test_single_case_flip_fails(self, address: str) -> None:
        # First letter after the 0x prefix
        index = next(i for i, c in enumerate(address) if i >= 2 and c.isalpha())
        tampered = _flip_case_at(address, index)
        assert tampered != address
        assert is_address(tampered) is False

    @pytest.mark.parametrize(
        "candidate",
        [
            "",
            "0x",
            "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAe",  # 39 digits
            "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAedd",  # 41 digits
            "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAeg",  # non-hex
            "1x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed",
            "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed\n",  # trailing newline
            " 0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed",
        ],
    )
    def test_malformed_addresses_fail(self, candidate: str) -> None:
        assert is_address(candidate) is False


class TestIsChecksumAddress:
    def test_accepts_without_prefix(self) -> None:
        assert is_checksum_address(CHECKSUMMED[1][2:]) is True

    def test_all_lower_mixed_address_fails_checksum(self) -> None:
        # Lower case passes is_address but not the strict checksum rule
        assert is_checksum_address(CHECKSUMMED[0].lower()) is False
