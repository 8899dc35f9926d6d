from sentinel.db.base_class import Base


# IMPORT ALL MODELS HERE (THIS REGISTERS THEM WITH Base.metadata)
from sentinel.models.identity import Identity, IdentityAddress
from sentinel.models.reason import Reason
from sentinel.models.revocation import Revocation
