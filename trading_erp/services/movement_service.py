# trading_erp/services/movement_service.py
import logging
from dataclasses import replace

from trading_erp.core.stock import apply_movement, changed_products, reverse_movement
from trading_erp.exceptions import ValidationError
from trading_erp.models import Collection, ProductMovement
from trading_erp.services.record_store import RecordStore
from trading_erp.utils.validation import validate_movement

logger = logging.getLogger(__name__)


class MovementService:
    """Service for warehouse to warehouse transfers."""

    def __init__(self, store: RecordStore):
        self.store = store
        self.options = store.options

    def save_movement(self, draft: ProductMovement) -> ProductMovement:
        """Create or edit a movement and apply it to stock at once.

        When editing, the stored movement is undone in the same step: the
        check counts its transfer as reversed and only the net change per
        stock cell is applied, so nothing changes unless every item can move.

        Raises:
            ValidationError: Invalid movement
            InsufficientStockError: Source warehouse cannot cover the items
        """
        movement = replace(draft, items=tuple(i for i in draft.items if i.product_id))

        errors = validate_movement(movement, self.store)
        if errors:
            raise ValidationError("Invalid product movement", code='INVALID_MOVEMENT', details=errors)

        old_movement = self.store.get(Collection.PRODUCT_MOVEMENTS, movement.id)

        with self.store.transaction():
            products = self.store.products()
            updated = apply_movement(products, movement, old_movement,
                                     self.options.clamp_negative_stock)

            self.store.save_products(changed_products(products, updated))
            saved = self.store.save(Collection.PRODUCT_MOVEMENTS, movement)

        logger.info(f"Saved movement {saved.id}")
        return saved

    def delete_movement(self, movement_id: int):
        """Reverse a movement, unlink it from sell orders and bin it."""
        movement = self.store.require(Collection.PRODUCT_MOVEMENTS, movement_id)

        with self.store.transaction():
            products = self.store.products()
            updated = reverse_movement(products, movement, self.options.clamp_negative_stock)
            self.store.save_products(changed_products(products, updated))

            for order in self.store.list(Collection.SELL_ORDERS):
                if order.product_movement_id == movement_id:
                    self.store.save(Collection.SELL_ORDERS, replace(order, product_movement_id=None))
                    logger.info(f"Unlinked movement {movement_id} from sell order {order.id}")

            return self.store.soft_delete(Collection.PRODUCT_MOVEMENTS, movement_id)
