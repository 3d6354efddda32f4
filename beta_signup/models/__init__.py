from beta_signup.db.database import Base
from beta_signup.models.app import App
from beta_signup.models.promotional_code import PromotionalCode
from beta_signup.models.tester import Tester, normalize_email, tester_key

__all__ = [
    "Base",
    "App",
    "PromotionalCode",
    "Tester",
    "normalize_email",
    "tester_key",
]
