"""Ready notices and the Twilio/SendGrid transport failing without raising."""

from types import SimpleNamespace
from urllib.error import URLError

from sqlalchemy import select

from foodtruck.core.config import get_settings
from foodtruck.models import Customer, Message, MessageChannel, MessageStatus, OrderStatus
from foodtruck.services.notifications import MockNotificationService, RealNotificationService
from foodtruck.services.notifications.base import ready_notice_text
from foodtruck.services.orders import LineItemRequest, advance_order_status, create_order_with_line_items


class UnreachableSendGrid:
    def send(self, mail):
        raise URLError("connection refused")


class RejectingSendGrid:
    def send(self, mail):
        return SimpleNamespace(status_code=401, headers={})


class DroppedTwilio:
    class messages:
        @staticmethod
        def create(**kwargs):
            raise TimeoutError("read timed out")


def real_service(**clients) -> RealNotificationService:
    settings = get_settings().model_copy(update={
        "sendgrid_from_email": "orders@foodtruck.example",
        "twilio_phone_number": "+15550100000",
    })
    return RealNotificationService(settings, **clients)


def test_ready_notice_text():
    assert ready_notice_text("Taco Loco", 12.5, "Ana") == (
        "Hi Ana! Your order from Taco Loco is ready for pickup. Total: $12.50"
    )
    assert ready_notice_text("Taco Loco", 3).startswith("Your order from Taco Loco")


async def test_ready_notice_prefers_sms_then_email():
    notifier = MockNotificationService()

    by_sms = await notifier.send_order_ready("Taco Loco", 9.0, phone="555-0100", email="ana@example.com")
    by_email = await notifier.send_order_ready("Taco Loco", 9.0, email="ana@example.com")
    nobody = await notifier.send_order_ready("Taco Loco", 9.0)

    assert (by_sms.channel, by_email.channel, nobody) == ("sms", "email", None)
    assert [entry["to"] for entry in notifier.sent] == ["555-0100", "ana@example.com"]
    assert by_email.result.message_id.startswith("email_mock_")


async def test_unreachable_sendgrid_is_a_failed_result():
    result = await real_service(sendgrid_client=UnreachableSendGrid()).send_email(
        "ana@example.com", "Ready", "<p>Ready</p>"
    )

    assert result.success is False
    assert "connection refused" in result.error_message
    assert result.provider == "sendgrid"


async def test_rejected_email_is_a_failed_result():
    result = await real_service(sendgrid_client=RejectingSendGrid()).send_email(
        "ana@example.com", "Ready", "<p>Ready</p>"
    )

    assert result.success is False
    assert "401" in result.error_message


async def test_dropped_twilio_connection_is_a_failed_result():
    result = await real_service(twilio_client=DroppedTwilio()).send_sms("555-0100", "Ready")

    assert result.success is False
    assert result.provider == "twilio"


async def test_email_outage_does_not_block_the_ready_transition(db, account, products):
    customer = Customer(account_id=account.id, name="Ana", email="ana@example.com")
    db.add(customer)
    await db.commit()
    order = await create_order_with_line_items(
        db, account.id, [LineItemRequest("p-taco", 1, 4.5)], customer_id=customer.id
    )

    notifier = real_service(sendgrid_client=UnreachableSendGrid())
    for _ in range(3):
        order = await advance_order_status(db, account.id, order.id, notification_service=notifier)

    assert order.status == OrderStatus.READY
    message = (await db.execute(select(Message).where(Message.order_id == order.id))).scalar_one()
    assert message.channel == MessageChannel.EMAIL
    assert message.status == MessageStatus.FAILED
    assert message.body == ready_notice_text("Taco Loco", 4.5, "Ana")
    assert message.failed_at is not None
