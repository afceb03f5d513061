from ..models import Supplier
from .parties import make_party_blueprint

suppliers_bp = make_party_blueprint(Supplier, "suppliers")
