# Import every model so Base.metadata is complete for create_all and Alembic.
from snooker_api.db.models.user import User  # noqa: F401
from snooker_api.db.models.user_session import UserSession  # noqa: F401
from snooker_api.db.models.one_time_passcode import OneTimePasscode, OTPPurpose  # noqa: F401
from snooker_api.db.models.snooker_house import SnookerHouse  # noqa: F401
from snooker_api.db.models.snooker_table import SnookerTable, TableStatus, PricingMethod  # noqa: F401
from snooker_api.db.models.product import (  # noqa: F401
    Product,
    ProductCategory,
    ProductStatus,
    ProductUnit,
    StockOperation,
)
from snooker_api.db.models.game_session import (  # noqa: F401
    GameSession,
    PaymentStatus,
    SessionItem,
    SessionPayment,
    SessionPaymentMethod,
    SessionStatus,
)
from snooker_api.db.models.sale import Sale, SaleItem, SalePaymentMethod  # noqa: F401
