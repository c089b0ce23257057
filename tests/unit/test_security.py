"""Unit tests for log masking and format validation helpers."""

import pytest

from simplepay.utils.security import mask_address, mask_payment_id, mask_sensitive, mask_tx_hash
from simplepay.utils.validation import (
    validate_monero_address,
    validate_payment_id,
    validate_view_key,
)
from tests.fakes import PRIMARY_ADDRESS, STAGENET_ADDRESS, VIEW_KEY


class TestMasking:
    def test_mask_address(self):
        assert mask_address(PRIMARY_ADDRESS) == "44AFFq...EP3A"

    @pytest.mark.parametrize("value", [None, "", "short"])
    def test_mask_address_short(self, value):
        assert mask_address(value) == "***"

    def test_mask_payment_id(self):
        assert mask_payment_id("a1b2c3d4e5f60718") == "a1b2...0718"
        assert mask_payment_id(None) == "***"

    def test_mask_tx_hash(self):
        masked = mask_tx_hash("0123456789" + "f" * 54)
        assert masked == "0123456789...ffffff"

    def test_mask_sensitive(self):
        assert mask_sensitive(VIEW_KEY) == VIEW_KEY[:4] + "*" * 8
        assert mask_sensitive("abc") == "***"


class TestValidation:
    def test_mainnet_address(self):
        assert validate_monero_address(PRIMARY_ADDRESS, network="mainnet")
        assert not validate_monero_address(PRIMARY_ADDRESS, network="stagenet")

    def test_stagenet_address(self):
        assert validate_monero_address(STAGENET_ADDRESS, network="stagenet")

    def test_invalid_characters(self):
        assert not validate_monero_address("0" + PRIMARY_ADDRESS[1:])
        assert not validate_monero_address(PRIMARY_ADDRESS[:-1] + "l")

    def test_integrated_length(self):
        assert not validate_monero_address(PRIMARY_ADDRESS, integrated=True)
        assert validate_monero_address(PRIMARY_ADDRESS + "A" * 11, integrated=True)

    def test_view_key(self):
        assert validate_view_key(VIEW_KEY)
        assert not validate_view_key(VIEW_KEY[:-1])
        assert not validate_view_key("z" * 64)

    def test_payment_id(self):
        assert validate_payment_id("a1b2c3d4e5f60718")
        assert not validate_payment_id("a1b2c3d4e5f6071")
        assert not validate_payment_id("")
