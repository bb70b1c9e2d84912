"""Scenario enumerations and their QuickPricer numeric codes.

Every member of every enumeration has an engine code. The code tables are
checked at import time so a member added without a code fails immediately
instead of silently pricing with a default.
"""

from enum import Enum
from typing import Dict, Type


class Occupancy(str, Enum):
    """Property occupancy type enumeration"""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    INVESTMENT = "investment"


class PropertyType(str, Enum):
    """Property type enumeration"""
    SFR = "sfr"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    TWO_UNIT = "2unit"
    THREE_UNIT = "3unit"
    FOUR_UNIT = "4unit"
    FIVE_TO_NINE_UNIT = "5-9unit"


class LoanPurpose(str, Enum):
    """Loan purpose enumeration"""
    PURCHASE = "purchase"
    REFINANCE = "refinance"
    CASHOUT = "cashout"


class DocumentationType(str, Enum):
    """Income documentation type enumeration"""
    FULL_DOC = "fullDoc"
    ALT_DOC = "altDoc"
    BANK_STATEMENT = "bankStatement"
    BANK_STATEMENT_12 = "bankStatement12"
    BANK_STATEMENT_24 = "bankStatement24"
    BANK_STATEMENT_OTHER = "bankStatementOther"
    TAX_RETURNS_1YR = "taxReturns1Yr"
    ASSET_DEPLETION = "assetDepletion"
    ASSET_UTILIZATION = "assetUtilization"
    DSCR = "dscr"
    VOE = "voe"
    NO_RATIO = "noRatio"


class Citizenship(str, Enum):
    """Borrower citizenship / residency enumeration"""
    US_CITIZEN = "usCitizen"
    PERMANENT_RESIDENT = "permanentResident"
    NON_PERMANENT_RESIDENT = "nonPermanentResident"
    FOREIGN_NATIONAL = "foreignNational"
    ITIN = "itin"


class DscrTier(str, Enum):
    """DSCR ratio band as understood by the pricing engine"""
    GTE_1_250 = ">=1.250"
    FROM_1_150 = "1.150-1.249"
    FROM_1_000 = "1.00-1.149"
    FROM_0_750 = "0.750-0.999"
    FROM_0_500 = "0.500-0.749"
    NO_RATIO = "noRatio"


class PrepayPeriod(str, Enum):
    """Prepayment penalty period selected for investment scenarios"""
    FIVE_YEAR = "5year"
    FOUR_YEAR = "4year"
    THREE_YEAR = "3year"
    TWO_YEAR = "2year"
    ONE_YEAR = "1year"
    ZERO_YEAR = "0year"


class ImpoundType(str, Enum):
    """Escrow / impound handling"""
    ESCROWED = "escrowed"
    NO_ESCROW = "noescrow"


class PaymentType(str, Enum):
    """Principal & interest or interest only"""
    PRINCIPAL_AND_INTEREST = "pi"
    INTEREST_ONLY = "io"


OCCUPANCY_CODES: Dict[Occupancy, int] = {
    Occupancy.PRIMARY: 0,
    Occupancy.SECONDARY: 1,
    Occupancy.INVESTMENT: 2,
}

PROPERTY_TYPE_CODES: Dict[PropertyType, int] = {
    PropertyType.SFR: 1,
    PropertyType.CONDO: 2,
    PropertyType.TOWNHOUSE: 3,
    PropertyType.TWO_UNIT: 4,
    PropertyType.THREE_UNIT: 5,
    PropertyType.FOUR_UNIT: 6,
    PropertyType.FIVE_TO_NINE_UNIT: 7,
}

# The lender's Non-QM configuration prices rate/term and cash-out refinances
# under the same purpose code; cash-out adjustments are stripped afterwards.
LOAN_PURPOSE_CODES: Dict[LoanPurpose, int] = {
    LoanPurpose.PURCHASE: 1,
    LoanPurpose.REFINANCE: 2,
    LoanPurpose.CASHOUT: 2,
}

DOCUMENTATION_CODES: Dict[DocumentationType, int] = {
    DocumentationType.FULL_DOC: 1,
    DocumentationType.ALT_DOC: 2,
    DocumentationType.BANK_STATEMENT: 3,
    DocumentationType.BANK_STATEMENT_12: 3,
    DocumentationType.BANK_STATEMENT_24: 3,
    DocumentationType.BANK_STATEMENT_OTHER: 3,
    DocumentationType.TAX_RETURNS_1YR: 2,
    DocumentationType.ASSET_DEPLETION: 4,
    DocumentationType.ASSET_UTILIZATION: 4,
    DocumentationType.DSCR: 5,
    DocumentationType.VOE: 6,
    DocumentationType.NO_RATIO: 7,
}

CITIZENSHIP_CODES: Dict[Citizenship, int] = {
    Citizenship.US_CITIZEN: 0,
    Citizenship.PERMANENT_RESIDENT: 1,
    Citizenship.NON_PERMANENT_RESIDENT: 2,
    Citizenship.FOREIGN_NATIONAL: 3,
    Citizenship.ITIN: 4,
}

DSCR_TIER_CODES: Dict[DscrTier, int] = {
    DscrTier.GTE_1_250: 1,
    DscrTier.FROM_1_150: 2,
    DscrTier.FROM_1_000: 3,
    DscrTier.FROM_0_750: 4,
    DscrTier.FROM_0_500: 5,
    DscrTier.NO_RATIO: 6,
}

PPP_PATTERNS: Dict[PrepayPeriod, str] = {
    PrepayPeriod.FIVE_YEAR: "5 YR PPP",
    PrepayPeriod.FOUR_YEAR: "4 YR PPP",
    PrepayPeriod.THREE_YEAR: "3 YR PPP",
    PrepayPeriod.TWO_YEAR: "2 YR PPP",
    PrepayPeriod.ONE_YEAR: "1 YR PPP",
    PrepayPeriod.ZERO_YEAR: "0 YR PPP",
}

occupancy_display = {
    Occupancy.PRIMARY: "Primary Residence",
    Occupancy.SECONDARY: "Second Home",
    Occupancy.INVESTMENT: "Investment Property",
}

property_type_display = {
    PropertyType.SFR: "Single Family",
    PropertyType.CONDO: "Condo",
    PropertyType.TOWNHOUSE: "Townhouse",
    PropertyType.TWO_UNIT: "2 Unit",
    PropertyType.THREE_UNIT: "3 Unit",
    PropertyType.FOUR_UNIT: "4 Unit",
    PropertyType.FIVE_TO_NINE_UNIT: "5-9 Unit",
}


def _require_total(enum_cls: Type[Enum], table: Dict) -> None:
    missing = [member.value for member in enum_cls if member not in table]
    if missing:
        raise TypeError(f"{enum_cls.__name__} members without an engine code: {missing}")


for _enum_cls, _table in (
        (Occupancy, OCCUPANCY_CODES),
        (PropertyType, PROPERTY_TYPE_CODES),
        (LoanPurpose, LOAN_PURPOSE_CODES),
        (DocumentationType, DOCUMENTATION_CODES),
        (Citizenship, CITIZENSHIP_CODES),
        (DscrTier, DSCR_TIER_CODES),
        (PrepayPeriod, PPP_PATTERNS),
):
    _require_total(_enum_cls, _table)


def occupancy_code(occupancy: Occupancy) -> int:
    return OCCUPANCY_CODES[Occupancy(occupancy)]


def property_type_code(property_type: PropertyType) -> int:
    return PROPERTY_TYPE_CODES[PropertyType(property_type)]


def loan_purpose_code(purpose: LoanPurpose) -> int:
    return LOAN_PURPOSE_CODES[LoanPurpose(purpose)]


def documentation_code(documentation_type: DocumentationType) -> int:
    return DOCUMENTATION_CODES[DocumentationType(documentation_type)]


def citizenship_code(citizenship: Citizenship) -> int:
    return CITIZENSHIP_CODES[Citizenship(citizenship)]


def dscr_tier_code(tier: DscrTier) -> int:
    return DSCR_TIER_CODES[DscrTier(tier)]
