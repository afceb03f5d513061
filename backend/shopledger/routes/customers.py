from ..models import Customer
from .parties import make_party_blueprint

customers_bp = make_party_blueprint(Customer, "customers")
