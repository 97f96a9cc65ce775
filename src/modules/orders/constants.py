"""Order module constants.

Fulfillment and payment status values live in
``modules.workflow.constants`` (``OrderStatus``, ``PaymentStatus``).
"""

ORDER_NUMBER_MAX_RETRIES = 5
