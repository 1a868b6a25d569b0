"""
Tests for secret generation (envsetup/secrets.py).
"""

import base64
from unittest.mock import patch

import pytest

from envsetup.secrets import (
    EntropySourceUnavailableError,
    generate_key_material,
    generate_password,
)


class TestGeneratePassword:
    """Tests for password generation."""

    def test_length_and_alphabet(self):
        password = generate_password()
        assert len(password) == 25
        assert password.isalnum()

    def test_custom_length(self):
        assert len(generate_password(60)) == 60

    def test_distinct(self):
        assert generate_password() != generate_password()

    @patch("envsetup.secrets.secrets.token_bytes")
    def test_refills_when_stripping_leaves_too_few(self, mock_bytes):
        # All-0xff bytes encode to "/" only, which is stripped entirely
        mock_bytes.side_effect = [b"\xff" * 32, b"\x00" * 32]
        assert generate_password() == "A" * 25
        assert mock_bytes.call_count == 2

    @patch("envsetup.secrets.secrets.token_bytes", side_effect=NotImplementedError)
    def test_no_entropy_source(self, mock_bytes):
        with pytest.raises(EntropySourceUnavailableError):
            generate_password()


class TestGenerateKeyMaterial:
    """Tests for key material generation."""

    def test_is_64_bytes_base64(self):
        assert len(base64.b64decode(generate_key_material())) == 64

    @patch("envsetup.secrets.secrets.token_bytes", side_effect=NotImplementedError)
    def test_no_entropy_source(self, mock_bytes):
        with pytest.raises(EntropySourceUnavailableError):
            generate_key_material()
