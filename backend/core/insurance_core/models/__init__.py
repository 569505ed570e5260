from .partner import Partner
from .policy import Policy, PolicySequence
from .product import InsuranceProduct
from .reminder import PolicyReminder

__all__ = [
    "InsuranceProduct",
    "Partner",
    "Policy",
    "PolicyReminder",
    "PolicySequence",
]
