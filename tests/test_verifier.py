"""Tests for single-certificate verification."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.core.config import VerifierConfig
from app.certs.exceptions import ValidationError
from app.certs.models import Credential, ErrorCode, VerificationVerdict
from app.certs.verifier import (
    MSG_NOT_FOUND,
    MSG_WRONG_TYPE,
    CertificateVerifier,
    validate_certificate_id,
    verify_certificate,
)

from conftest import PACKAGE_ID, cert_id


@pytest.fixture
def verifier(ledger, fixed_clock):
    return CertificateVerifier(ledger, VerifierConfig(), clock=fixed_clock)


class TestValidateCertificateId:
    """Identifier shape checks run before any read."""

    @pytest.mark.parametrize("identifier,code", [
        (None, ErrorCode.ID_MISSING),
        ("", ErrorCode.ID_MISSING),
        ("   ", ErrorCode.ID_MISSING),
        ("not-hex!!", ErrorCode.ID_BAD_PREFIX),
        ("1234567890ab", ErrorCode.ID_BAD_PREFIX),
        ("0x01", ErrorCode.ID_TOO_SHORT),
        ("0x1234567", ErrorCode.ID_TOO_SHORT),
        ("0x12345678zz", ErrorCode.ID_NOT_HEX),
    ])
    def test_rejections(self, identifier, code):
        with pytest.raises(ValidationError) as exc:
            validate_certificate_id(identifier)
        assert exc.value.code == code

    def test_minimum_length_accepted(self):
        assert validate_certificate_id("0x12345678") == "0x12345678"

    def test_whitespace_stripped(self):
        assert validate_certificate_id(f"  {cert_id(1)}\n") == cert_id(1)

    def test_uppercase_hex_accepted(self):
        assert validate_certificate_id("0xABCDEF0123") == "0xABCDEF0123"


class TestVerify:

    @pytest.mark.asyncio
    async def test_not_hex_rejected_without_read(self, ledger, verifier):
        verdict = await verifier.verify("not-hex!!")

        assert verdict.is_valid is False
        assert "hexadecimal" in verdict.error
        assert verdict.record is None
        assert ledger.total_calls == 0

    @pytest.mark.asyncio
    async def test_too_short_rejected_without_read(self, ledger, verifier):
        verdict = await verifier.verify("0x01")

        assert verdict.is_valid is False
        assert "too short" in verdict.error
        assert verdict.error_code == ErrorCode.ID_TOO_SHORT
        assert ledger.total_calls == 0

    @pytest.mark.asyncio
    async def test_valid_certificate(self, ledger, verifier, make_certificate):
        ledger.objects[cert_id(1)] = make_certificate(cert_id(1))

        verdict = await verifier.verify(cert_id(1))

        assert verdict.is_valid is True
        assert verdict.record.id == cert_id(1)
        assert verdict.is_expired is False
        assert verdict.error is None
        assert ledger.calls["get_object"] == 1

    @pytest.mark.asyncio
    async def test_expired_certificate_is_still_valid(self, ledger, verifier, make_certificate, fixed_clock):
        ledger.objects[cert_id(1)] = make_certificate(cert_id(1), expires_at=str(fixed_clock() - 1))

        verdict = await verifier.verify(cert_id(1))

        assert verdict.is_valid is True
        assert verdict.is_expired is True

    @pytest.mark.asyncio
    async def test_future_expiry_not_expired(self, ledger, verifier, make_certificate, fixed_clock):
        ledger.objects[cert_id(1)] = make_certificate(cert_id(1), expires_at=str(fixed_clock() + 1))

        verdict = await verifier.verify(cert_id(1))

        assert verdict.is_expired is False

    @pytest.mark.asyncio
    async def test_wrong_type(self, ledger, verifier, make_certificate):
        ledger.objects[cert_id(2)] = make_certificate(cert_id(2), type_tag=f"{PACKAGE_ID}::coin::Coin")

        verdict = await verifier.verify(cert_id(2))

        assert verdict.is_valid is False
        assert verdict.error == MSG_WRONG_TYPE
        assert verdict.error_code == ErrorCode.WRONG_TYPE
        assert verdict.recoverable is False

    @pytest.mark.asyncio
    async def test_not_found(self, verifier):
        verdict = await verifier.verify(cert_id(3))

        assert verdict.is_valid is False
        assert verdict.error == MSG_NOT_FOUND
        assert verdict.error_code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_invalid_structure(self, ledger, verifier, make_certificate):
        raw = make_certificate(cert_id(4))
        del raw["content"]["fields"]
        ledger.objects[cert_id(4)] = raw

        verdict = await verifier.verify(cert_id(4))

        assert verdict.is_valid is False
        assert verdict.error_code == ErrorCode.INVALID_STRUCTURE

    @pytest.mark.asyncio
    async def test_lookup_failure_is_recoverable(self, ledger, verifier):
        ledger.fail_objects.add(cert_id(5))

        verdict = await verifier.verify(cert_id(5))

        assert verdict.is_valid is False
        assert verdict.error.startswith("Failed to verify certificate:")
        assert verdict.error_code == ErrorCode.LOOKUP_FAILED
        assert verdict.recoverable is True

    @pytest.mark.asyncio
    async def test_wrapper(self, ledger, make_certificate):
        ledger.objects[cert_id(6)] = make_certificate(cert_id(6))
        verdict = await verify_certificate(ledger, cert_id(6))
        assert verdict.is_valid is True


class TestVerdictModel:
    """Exactly one of record/error is ever set."""

    def test_valid_requires_record(self):
        with pytest.raises(PydanticValidationError):
            VerificationVerdict(is_valid=True)

    def test_record_and_error_exclusive(self):
        with pytest.raises(PydanticValidationError):
            VerificationVerdict(
                is_valid=False, record=Credential(id=cert_id(1)), error="nope",
            )

    def test_invalid_factory(self):
        verdict = VerificationVerdict.invalid("nope", ErrorCode.NOT_FOUND)
        assert verdict.record is None
        assert verdict.is_expired is None
