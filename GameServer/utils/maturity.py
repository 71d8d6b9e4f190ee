from enum import Enum

class Maturity(Enum):
    """
    Makes sure the maturity is valid, including case-sensitivity.
    Decides the defaults for anything that'd be painful to lose in prod (volumes, backups).
    """
    DEVEL = "devel"
    PROD = "prod"
