"""
Django signals for Iamport payment events.

Usage:
    from django.dispatch import receiver
    from iamporter.signals import payment_paid, payment_failed

    @receiver(payment_paid)
    def send_receipt(sender, operation, data, **kwargs):
        # data is the payment object returned by Iamport
        pass

    @receiver(payment_failed)
    def log_failure(sender, operation, error_code, error_message, **kwargs):
        sentry_sdk.capture_message(f"Payment failed: {error_message}")

Signals:
    payment_paid: Fired when a card charge succeeds
    payment_failed: Fired when Iamport rejects a charge or cancellation
    payment_cancelled: Fired when a payment is cancelled
"""

from django.dispatch import Signal

# Fired when pay_onetime, pay_subscription or pay_foreign succeeds.
#
# Arguments:
#   sender: Client class
#   operation: Operation name (e.g., "pay_onetime")
#   data: Payment object from the Iamport response
payment_paid = Signal()

# Fired when Iamport rejects a charge or cancellation.
# Local validation errors do not fire this signal.
#
# Arguments:
#   sender: Client class
#   operation: Operation name (e.g., "cancel_by_imp_uid")
#   error_code: Iamport envelope code
#   error_message: Iamport message, unmodified
payment_failed = Signal()

# Fired when a payment is cancelled (fully or partially).
#
# Arguments:
#   sender: Client class
#   operation: Operation name (e.g., "cancel_by_merchant_uid")
#   data: Cancelled payment object from the Iamport response
payment_cancelled = Signal()
