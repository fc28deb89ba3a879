from __future__ import annotations

import httpx
import pytest

from app.services.verification.email_verifier import EmailVerifier
from tests.helpers.stubs import StaticMxResolver, make_fetcher


def _verifier(*, has_mx: bool = True, reachable: bool = True) -> EmailVerifier:
    status = 200 if reachable else 404
    fetcher = make_fetcher(lambda request: httpx.Response(status))
    return EmailVerifier(fetcher, resolver=StaticMxResolver(has_mx=has_mx))


@pytest.mark.asyncio
async def test_missing_email_yields_empty_block():
    result = await _verifier().verify(None)

    assert result.confidence_score == 0
    assert result.is_valid_format is False


@pytest.mark.asyncio
async def test_malformed_email_scores_zero():
    result = await _verifier().verify("not-an-email")

    assert result.is_valid_format is False
    assert result.confidence_score == 0


@pytest.mark.asyncio
async def test_professional_email_with_mx_and_reachable_domain():
    result = await _verifier().verify("Jane@Outlet.com")

    assert result.domain == "outlet.com"
    assert result.is_valid_format is True
    assert result.mx_record_exists is True
    assert result.smtp_check_result == "likely_deliverable"
    assert result.is_deliverable is True
    assert result.confidence_score == 100


@pytest.mark.asyncio
async def test_common_provider_is_deliverable_without_probe():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("common providers must not be probed")

    verifier = EmailVerifier(make_fetcher(handler), resolver=StaticMxResolver())
    result = await verifier.verify("reporter@gmail.com")

    assert result.smtp_check_result == "deliverable"


@pytest.mark.asyncio
async def test_role_and_disposable_addresses_lose_points():
    role = await _verifier().verify("info@outlet.com")
    disposable = await _verifier().verify("jane@mailinator.com")

    assert role.is_role_based is True
    assert role.confidence_score == 90
    assert disposable.is_disposable is True
    assert disposable.confidence_score == 80


@pytest.mark.asyncio
async def test_unreachable_domain_without_mx():
    result = await _verifier(has_mx=False, reachable=False).verify("jane@obscure-outlet.net")

    assert result.smtp_check_result == "unknown"
    assert result.is_deliverable is False
    assert result.confidence_score == 20 + 20 + 10
