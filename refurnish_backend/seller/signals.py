from django.dispatch import Signal

# kwargs: user_id, product_id, status, message
product_status_update = Signal()

# kwargs: user_id, product_id, product_name
product_sold_update = Signal()
