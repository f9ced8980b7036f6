from .crud_game_session import game_session
from .crud_otp import otp
from .crud_product import product
from .crud_sale import sale
from .crud_snooker_house import snooker_house
from .crud_table import table
from .crud_user import user
from .crud_user_session import user_session
