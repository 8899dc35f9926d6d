from sentinel.models.identity import Identity, IdentityAddress
from sentinel.models.reason import Reason, ReasonCategory
from sentinel.models.revocation import Revocation, RevocationCategory
