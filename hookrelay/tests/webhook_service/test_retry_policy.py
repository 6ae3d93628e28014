import pytest

from hookrelay.common import ServiceSettings
from hookrelay.webhook_service.app.main import build_dispatcher
from hookrelay.webhook_service.app.policy import SINGLE_RETRY, RetryPolicy
from hookrelay.webhook_service.app.transport import SendResult, SendResultKind


def test_rate_limited_first_attempt_is_retried_once() -> None:
    result = SendResult(SendResultKind.RATE_LIMITED, status_code=429, retry_after=1.0)

    assert SINGLE_RETRY.should_retry(1, result) is True
    assert SINGLE_RETRY.should_retry(2, result) is False
    assert SINGLE_RETRY.should_retry(3, result) is False


@pytest.mark.parametrize(
    "result",
    [
        SendResult(SendResultKind.OK, status_code=204),
        SendResult(SendResultKind.REJECTED, status_code=500, detail="Internal Server Error"),
        SendResult(SendResultKind.ERROR, detail="ConnectError: boom"),
    ],
)
def test_non_rate_limited_results_are_never_retried(result: SendResult) -> None:
    assert SINGLE_RETRY.should_retry(1, result) is False


def test_retry_delay_uses_advertised_value() -> None:
    result = SendResult(SendResultKind.RATE_LIMITED, status_code=429, retry_after=2.5)

    assert SINGLE_RETRY.retry_delay(result) == 2.5


def test_retry_delay_falls_back_to_policy_default() -> None:
    policy = RetryPolicy(default_retry_after=3.0)
    result = SendResult(SendResultKind.RATE_LIMITED, status_code=429)

    assert policy.retry_delay(result) == 3.0


def test_build_dispatcher_takes_retry_default_from_settings() -> None:
    settings = ServiceSettings(
        enable_metrics=False,
        enable_tracing=False,
        webhook_url=None,
        webhook_default_retry_after_seconds=4.0,
    )

    dispatcher = build_dispatcher(settings)

    assert dispatcher._policy.retry_delay(SendResult(SendResultKind.RATE_LIMITED, status_code=429)) == 4.0
