# fulfillment/domain/status.py


class OrderStatus:
    CREATED = "CREATED"
    PAID = "PAID"
    FAILED = "FAILED"


class PaymentStatus:
    CREATED = "CREATED"
    PAID = "PAID"
    FAILED = "FAILED"


GATEWAY_RAZORPAY = "RAZORPAY"
