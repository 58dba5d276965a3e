import httpx
import pytest

from journal.config import Settings
from journal.models.article import Article
from journal.services.email_service import (
    DeliveryStatus,
    EmailClient,
    EmailConfig,
    article_published_email,
)
from conftest import translation

CONFIG = EmailConfig(api_key="key", sender_email="desk@footballjournal.org")


def _client(handler):
    return EmailClient(CONFIG, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_unconfigured_client_reports_instead_of_raising():
    client = EmailClient.from_settings(Settings(BREVO_API_KEY="", EMAIL_FROM=""))
    assert not client.configured

    result = await client.notify(["a@footballjournal.org"], "Hi", "<p>x</p>")
    assert result.status == DeliveryStatus.UNCONFIGURED
    assert result.sent == 0
    assert result.failed == 1


@pytest.mark.asyncio
async def test_invalid_sender_address_is_unconfigured():
    client = EmailClient.from_settings(Settings(BREVO_API_KEY="key", EMAIL_FROM="not-an-email"))
    assert not client.configured


@pytest.mark.asyncio
async def test_one_request_per_recipient_with_api_key():
    seen = []

    def handler(request):
        seen.append((request.headers["api-key"], request.read()))
        return httpx.Response(201, json={})

    result = await _client(handler).notify(
        ["a@footballjournal.org", "b@footballjournal.org"], "Subject", "<p>x</p>")

    assert result.status == DeliveryStatus.SENT
    assert result.sent == 2
    assert [key for key, _ in seen] == ["key", "key"]


@pytest.mark.asyncio
async def test_partial_and_failed_delivery():
    def handler(request):
        if b"bad@" in request.read():
            return httpx.Response(400, json={"message": "invalid"})
        return httpx.Response(201, json={})

    partial = await _client(handler).notify(
        ["ok@footballjournal.org", "bad@footballjournal.org"], "S", "b")
    assert partial.status == DeliveryStatus.PARTIAL
    assert (partial.sent, partial.failed) == (1, 1)

    failed = await _client(handler).notify(["bad@footballjournal.org"], "S", "b")
    assert failed.status == DeliveryStatus.FAILED


@pytest.mark.asyncio
async def test_no_recipients_is_a_noop():
    def handler(request):
        raise AssertionError("no request expected")

    result = await _client(handler).notify([], "S", "b")
    assert result.status == DeliveryStatus.SENT
    assert result.sent == 0


def test_published_email_escapes_and_links_slug():
    article = Article(
        id="a1",
        translations={"en": translation("<Derby> & more", excerpt="Big <win>"),
                      "ar": translation("دربي")},
        author="w", authorImage="/a.jpg", image="/m.jpg",
        category="etoile-du-sahel", slug="derby-more",
    )
    subject, body = article_published_email(article, frontend_url="https://footballjournal.org/")

    assert subject == "New article: <Derby> & more"
    assert "&lt;Derby&gt; &amp; more" in body
    assert "Big &lt;win&gt;" in body
    assert "https://footballjournal.org/article/derby-more" in body
    assert "Etoile Du Sahel" in body
