"""Webhook manager tests."""

import pytest
import httpx

from conftest import KEY_ID, OTHER_KEY_ID, body
from integrations_console.core.exceptions import BackendError, DuplicateSubmission, NoValidApiKey, ValidationError
from integrations_console.models import SubscriptionDraft, TriggerType, Webhook
from integrations_console.services import ApiKeyManager, WebhookManager
from integrations_console.services.webhook_manager import is_expired, rate_level, success_rate, validate_webhook_url

WEBHOOK_ID = "3b241101-e2bb-4255-8caf-4136c566a962"
HOOK_URL = "https://hooks.zapier.com/hooks/catch/123/abc/"


@pytest.fixture
def manager(backend, cache, tracker):
    keys = ApiKeyManager(backend, cache, tracker)
    return WebhookManager(backend, cache, keys, tracker)


@pytest.fixture
def keys_table(stub, api_key_row):
    """zapier_api_keys holding one usable key."""
    rows = {KEY_ID: api_key_row}

    def select(request):
        key_filter = request.url.params.get("id")
        if key_filter:
            row = rows.get(key_filter.replace("eq.", ""))
            return [row] if row else []
        if request.url.params.get("is_active") == "eq.true":
            return [r for r in rows.values() if r["is_active"]]
        return list(rows.values())

    stub.on_table("GET", "zapier_api_keys", select)
    return rows


def webhook_row(**overrides):
    row = {
        "id": WEBHOOK_ID,
        "api_key_id": KEY_ID,
        "trigger_type": "analysis_completed",
        "webhook_url": HOOK_URL,
        "is_active": True,
        "success_count": 0,
        "failure_count": 0,
    }
    row.update(overrides)
    return row


class TestSuccessRate:
    """Delivery success rate and its display level."""

    def test_no_deliveries(self):
        assert success_rate(0, 0) == 0
        assert rate_level(0, 0) == "none"

    def test_ninety_percent(self):
        assert success_rate(9, 1) == 90
        assert rate_level(9, 1) == "healthy"

    def test_rounds_half_up(self):
        assert success_rate(1, 1) == 50
        assert success_rate(2, 1) == 67
        assert success_rate(1, 2) == 33

    def test_monotonic_in_successes(self):
        rates = [success_rate(s, 5) for s in range(0, 50)]
        assert rates == sorted(rates)

    def test_levels(self):
        assert rate_level(8, 2) == "warning"
        assert rate_level(6, 4) == "failing"
        assert rate_level(7, 3) == "warning"


class TestExpiry:
    """Expired webhooks are recognised from the last delivery error."""

    @pytest.mark.parametrize("error", [
        "404 Not Found",
        "HTTP 410 Gone",
        "Hook not found",
        "Please UNSUBSCRIBE ME",
    ])
    def test_expired(self, error):
        assert is_expired(error)

    @pytest.mark.parametrize("error", [None, "", "timeout", "500 Internal Server Error", "HTTP 4040"])
    def test_not_expired(self, error):
        assert not is_expired(error)


class TestValidateUrl:

    def test_https_only(self):
        assert validate_webhook_url(HOOK_URL)
        assert not validate_webhook_url("http://hooks.zapier.com/x")
        assert not validate_webhook_url("ftp://hooks.zapier.com/x")
        assert not validate_webhook_url("not a url")
        assert not validate_webhook_url("https://")


class TestSubscribe:
    """Subscription validation and the subscribe round trip."""

    @pytest.mark.asyncio
    async def test_rejects_http_without_network_call(self, manager, stub):
        """A plain-http URL is refused before anything is sent."""
        with pytest.raises(ValidationError):
            await manager.subscribe(KEY_ID, "http://hooks.zapier.com/x", "analysis_completed")
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_rejects_unknown_trigger(self, manager, stub):
        with pytest.raises(ValidationError):
            await manager.subscribe(KEY_ID, HOOK_URL, "deal_won")
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_rejects_malformed_key_id(self, manager, stub):
        with pytest.raises(ValidationError):
            await manager.subscribe("not-a-uuid", HOOK_URL, "analysis_completed")
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_inactive_key(self, manager, stub, keys_table):
        keys_table[KEY_ID]["is_active"] = False
        with pytest.raises(NoValidApiKey):
            await manager.subscribe(KEY_ID, HOOK_URL, "analysis_completed")
        assert stub.function_calls("zapier-webhooks") == []

    @pytest.mark.asyncio
    async def test_key_without_scope(self, manager, stub, keys_table):
        keys_table[KEY_ID]["scopes"] = ["read:analysis"]
        with pytest.raises(NoValidApiKey):
            await manager.subscribe(KEY_ID, HOOK_URL, "hot_deal_identified")
        assert stub.function_calls("zapier-webhooks") == []

    @pytest.mark.asyncio
    async def test_unknown_key(self, manager, stub, keys_table):
        with pytest.raises(NoValidApiKey):
            await manager.subscribe(OTHER_KEY_ID, HOOK_URL, "analysis_completed")

    @pytest.mark.asyncio
    async def test_no_eligible_key(self, manager, stub, keys_table):
        keys_table[KEY_ID]["scopes"] = ["read:transcripts"]
        with pytest.raises(NoValidApiKey):
            await manager.subscribe(None, HOOK_URL, "analysis_completed")

    @pytest.mark.asyncio
    async def test_subscribe(self, manager, stub, keys_table):
        """A valid subscription sends exactly one subscribe call."""
        stub.on_function("zapier-webhooks", {
            "success": True,
            "data": {"webhook_id": WEBHOOK_ID, "created_at": "2026-02-01T08:00:00Z"},
        })

        webhook = await manager.subscribe(KEY_ID, f"  {HOOK_URL} ", "follow_up_required")

        assert webhook.id == WEBHOOK_ID
        assert webhook.trigger_type == TriggerType.FOLLOW_UP_REQUIRED
        assert stub.function_calls("zapier-webhooks") == [{
            "action": "subscribe",
            "api_key_id": KEY_ID,
            "trigger_type": "follow_up_required",
            "webhook_url": HOOK_URL,
        }]

    @pytest.mark.asyncio
    async def test_subscribe_picks_first_eligible_key(self, manager, stub, keys_table):
        stub.on_function("zapier-webhooks", {"success": True, "data": {"webhook_id": WEBHOOK_ID}})

        webhook = await manager.subscribe(None, HOOK_URL, "analysis_completed")

        assert webhook.api_key_id == KEY_ID

    @pytest.mark.asyncio
    async def test_backend_refusal(self, manager, stub, keys_table, tracker):
        stub.on_function("zapier-webhooks", {"success": False, "error": "Webhook limit reached"})

        with pytest.raises(BackendError) as exc_info:
            await manager.subscribe(KEY_ID, HOOK_URL, "analysis_completed")

        assert exc_info.value.message == "Webhook limit reached"
        assert tracker.state(f"subscribe:{KEY_ID}:analysis_completed:{HOOK_URL}").value == "rolled_back"

    @pytest.mark.asyncio
    async def test_duplicate_while_pending(self, manager, keys_table, tracker):
        tracker.begin(f"subscribe:{KEY_ID}:analysis_completed:{HOOK_URL}")
        with pytest.raises(DuplicateSubmission):
            await manager.subscribe(KEY_ID, HOOK_URL, "analysis_completed")


class TestTestDelivery:
    """Manual test deliveries."""

    @pytest.mark.asyncio
    async def test_successful_test_increments_success_count_once(self, manager, stub):
        """Counters are bumped by the backend and only read back here."""
        row = webhook_row(success_count=4, failure_count=1)

        def webhooks(request):
            payload = body(request)
            if payload["action"] == "test":
                row["success_count"] += 1
                return {"success": True, "data": {"message": "Delivered"}}
            return {"success": True, "webhooks": [dict(row)]}

        stub.on_function("zapier-webhooks", webhooks)

        before = await manager.get_webhook(WEBHOOK_ID)
        result = await manager.test(WEBHOOK_ID)

        assert result.delivered is True
        assert result.message == "Delivered"
        assert result.webhook.success_count == before.success_count + 1
        assert result.webhook.failure_count == before.failure_count
        assert success_rate(result.webhook.success_count, result.webhook.failure_count) == 83

    @pytest.mark.asyncio
    async def test_failed_test(self, manager, stub):
        row = webhook_row()

        def webhooks(request):
            payload = body(request)
            if payload["action"] == "test":
                row["failure_count"] += 1
                row["last_error"] = "404 Not Found"
                return {"success": False, "error": "Target answered 404"}
            return {"success": True, "webhooks": [dict(row)]}

        stub.on_function("zapier-webhooks", webhooks)

        result = await manager.test(WEBHOOK_ID)

        assert result.delivered is False
        assert result.message == "Target answered 404"
        assert result.webhook.failure_count == 1
        assert is_expired(result.webhook.last_error)

    @pytest.mark.asyncio
    async def test_delivery_to_url(self, manager, stub):
        stub.on_function("zapier-test", {"success": True, "data": {"status": 200}})

        result = await manager.test_delivery(HOOK_URL)

        assert result == {"status": 200}
        assert stub.function_calls("zapier-test") == [{"test": "webhook-delivery", "webhookUrl": HOOK_URL}]


class TestManage:

    @pytest.mark.asyncio
    async def test_list(self, manager, stub):
        stub.on_function("zapier-webhooks", {"success": True, "data": {"webhooks": [webhook_row()]}})

        webhooks = await manager.list_webhooks()

        assert [w.id for w in webhooks] == [WEBHOOK_ID]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, manager, stub):
        stub.on_function("zapier-webhooks", {"success": True})

        await manager.unsubscribe(WEBHOOK_ID)

        assert stub.function_calls("zapier-webhooks") == [{"action": "unsubscribe", "webhook_id": WEBHOOK_ID}]

    @pytest.mark.asyncio
    async def test_unsubscribe_failure(self, manager, stub):
        stub.on_function("zapier-webhooks", httpx.Response(500, json={"error": "boom"}))

        with pytest.raises(BackendError) as exc_info:
            await manager.unsubscribe(WEBHOOK_ID)
        assert exc_info.value.status_code == 500

    def test_replace_prefills_without_deleting(self, manager, stub):
        stale = Webhook(**webhook_row(trigger_type="hot_deal_identified", last_error="410 Gone"))

        draft = manager.replace(stale)

        assert draft == SubscriptionDraft(
            trigger_type=TriggerType.HOT_DEAL_IDENTIFIED,
            webhook_url="",
            replaces_webhook_id=WEBHOOK_ID,
        )
        assert stub.requests == []
