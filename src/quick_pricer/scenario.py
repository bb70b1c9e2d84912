"""Loan scenario model, form normalization and pre-submit validation."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Union

from quick_pricer.enums import (
    Citizenship,
    DocumentationType,
    DscrTier,
    ImpoundType,
    LoanPurpose,
    Occupancy,
    PaymentType,
    PrepayPeriod,
    PropertyType,
)
from quick_pricer.errors import ScenarioValidationError

logger = logging.getLogger(__name__)

DSCR_ONLY_FOR_INVESTMENT = "DSCR income documentation is only available for Investment properties"

# Fields a non-DSCR request must not carry to the engine.
DSCR_ONLY_FIELDS = ("dscrRatio", "dscrValue", "grossRent", "presentHousingExpense", "dscrEntityType")

# Form names (as the quote form posts them) for each LoanScenario field.
FORM_FIELDS = {
    "loan_amount": "loanAmount",
    "property_value": "propertyValue",
    "credit_score": "creditScore",
    "dti": "dti",
    "occupancy_type": "occupancyType",
    "property_type": "propertyType",
    "loan_purpose": "loanPurpose",
    "loan_term": "loanTerm",
    "loan_type": "loanType",
    "documentation_type": "documentationType",
    "prepay_period": "prepayPeriod",
    "property_zip": "propertyZip",
    "property_state": "propertyState",
    "property_county": "propertyCounty",
    "lock_days": "lockPeriod",
    "citizenship": "citizenship",
    "impound_type": "impoundType",
    "amortization": "amortization",
    "payment_type": "paymentType",
    "is_rural_property": "isRuralProperty",
    "is_non_warrantable_project": "isNonWarrantableProject",
    "is_first_time_buyer": "isFTHB",
    "has_itin": "hasITIN",
    "gross_rent": "grossRent",
    "housing_expense": "presentHousingExpense",
    "dscr_value": "dscrValue",
    "dscr_tier": "dscrRatio",
    "dscr_entity_type": "dscrEntityType",
}

_ENUM_FIELDS = {
    "occupancy_type": Occupancy,
    "property_type": PropertyType,
    "loan_purpose": LoanPurpose,
    "documentation_type": DocumentationType,
    "citizenship": Citizenship,
    "impound_type": ImpoundType,
    "payment_type": PaymentType,
    "dscr_tier": DscrTier,
}
_CURRENCY_FIELDS = ("loan_amount", "property_value", "gross_rent", "housing_expense")
_FLOAT_FIELDS = ("dti", "dscr_value")
_INT_FIELDS = ("credit_score", "lock_days")
_FLAG_FIELDS = ("is_rural_property", "is_non_warrantable_project", "is_first_time_buyer", "has_itin")


def parse_prepay_period(value: Any) -> PrepayPeriod:
    """Unrecognized prepay periods fall back to three years."""
    if isinstance(value, PrepayPeriod):
        return value
    try:
        return PrepayPeriod(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unknown prepay period {value!r}, using {PrepayPeriod.THREE_YEAR.value}")
        return PrepayPeriod.THREE_YEAR


def parse_currency_amount(value: Union[str, int, float]) -> float:
    """Parse various currency input formats into a float.

    Handles formats like:
    - 600000, 600,000, $600,000
    - "600k", "600K", "600 thousand"
    - "1.5m", "2 million"
    """
    if isinstance(value, (int, float)):
        return float(value)

    if not isinstance(value, str):
        raise ValueError(f"Cannot parse currency amount from {type(value)}")

    value = value.strip().lower()
    value = re.sub(r'[$,]', '', value)
    value = re.sub(r'\b(dollars?|bucks?)\b', '', value)

    multiplier = 1
    if re.search(r'\b(k|thousand|grand)\b', value):
        multiplier = 1000
        value = re.sub(r'\b(k|thousand|grand)\b', '', value)
    elif re.search(r'\b(m|million|mil)\b', value):
        multiplier = 1000000
        value = re.sub(r'\b(m|million|mil)\b', '', value)

    # Suffix attached to the number, e.g. "600k" or "1.5m"
    k_match = re.search(r'(\d+(?:\.\d+)?)k\b', value)
    if k_match:
        return float(k_match.group(1)) * 1000

    m_match = re.search(r'(\d+(?:\.\d+)?)m\b', value)
    if m_match:
        return float(m_match.group(1)) * 1000000

    numbers = re.findall(r'\d+(?:\.\d+)?', value.strip())
    if not numbers:
        raise ValueError(f"No numeric value found in: {value}")

    return float(numbers[0]) * multiplier


def calculate_ltv(loan_amount: float, property_value: float) -> float:
    """Loan-to-value in percent, rounded to one decimal."""
    if property_value <= 0:
        return 0.0
    return round(loan_amount / property_value * 1000) / 10


@dataclass(frozen=True)
class DscrResult:
    """Debt service coverage ratio with the engine tier it falls into."""
    value: float
    tier: DscrTier
    display: str


def calculate_dscr(gross_rent: float, housing_expense: float) -> DscrResult:
    """Compute DSCR = gross rent / housing expense and its tier.

    Args:
        gross_rent: Monthly gross rent of the subject property.
        housing_expense: Monthly PITIA of the subject property.

    Returns:
        DscrResult; a non-positive expense yields value 0 and tier noRatio.
    """
    if housing_expense <= 0:
        return DscrResult(value=0.0, tier=DscrTier.NO_RATIO, display="N/A")

    ratio = gross_rent / housing_expense
    if ratio >= 1.250:
        tier = DscrTier.GTE_1_250
    elif ratio >= 1.150:
        tier = DscrTier.FROM_1_150
    elif ratio >= 1.000:
        tier = DscrTier.FROM_1_000
    elif ratio >= 0.750:
        tier = DscrTier.FROM_0_750
    elif ratio >= 0.500:
        tier = DscrTier.FROM_0_500
    else:
        tier = DscrTier.NO_RATIO

    return DscrResult(value=round(ratio, 3), tier=tier, display=f"{ratio:.3f}")


def _lower(value: Any) -> str:
    return value.lower() if isinstance(value, str) else ""


def normalize_form_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Map loose synonyms from quote forms and chat agents onto canonical fields.

    Accepts ``fico``, ``zipCode``, ``state`` and ``purchasePrice`` aliases and
    free-text occupancy, property type, purpose and income documentation.
    DSCR-only fields are removed unless the request uses DSCR documentation.
    """
    norm = dict(data)
    if data.get("fico") and not data.get("creditScore"):
        norm["creditScore"] = data["fico"]
    if data.get("zipCode") and not data.get("propertyZip"):
        norm["propertyZip"] = data["zipCode"]
    if data.get("state") and not data.get("propertyState"):
        norm["propertyState"] = data["state"]
    if data.get("purchasePrice") and not data.get("propertyValue"):
        norm["propertyValue"] = data["purchasePrice"]

    occupancy = _lower(data.get("occupancy"))
    if "primary" in occupancy:
        norm["occupancyType"] = Occupancy.PRIMARY.value
    elif "second" in occupancy:
        norm["occupancyType"] = Occupancy.SECONDARY.value
    elif "invest" in occupancy:
        norm["occupancyType"] = Occupancy.INVESTMENT.value

    property_type = _lower(data.get("propertyType"))
    if "single" in property_type:
        norm["propertyType"] = PropertyType.SFR.value
    elif "condo" in property_type:
        norm["propertyType"] = PropertyType.CONDO.value
    elif "town" in property_type:
        norm["propertyType"] = PropertyType.TOWNHOUSE.value
    elif "2-4" in property_type:
        norm["propertyType"] = PropertyType.TWO_UNIT.value
    elif "5-9" in property_type or "5+" in property_type:
        norm["propertyType"] = PropertyType.FIVE_TO_NINE_UNIT.value

    purpose = _lower(data.get("loanPurpose"))
    if "purchase" in purpose:
        norm["loanPurpose"] = LoanPurpose.PURCHASE.value
    elif "refi" in purpose:
        norm["loanPurpose"] = LoanPurpose.REFINANCE.value
    elif "cash" in purpose:
        norm["loanPurpose"] = LoanPurpose.CASHOUT.value

    doc = _lower(data.get("incomeDocType"))
    if "full" in doc:
        norm["documentationType"] = DocumentationType.FULL_DOC.value
    elif "dscr" in doc or "investor" in doc:
        norm["documentationType"] = DocumentationType.DSCR.value
    elif "bank" in doc:
        norm["documentationType"] = DocumentationType.BANK_STATEMENT.value
    elif "asset" in doc:
        norm["documentationType"] = DocumentationType.ASSET_UTILIZATION.value
    elif "voe" in doc:
        norm["documentationType"] = DocumentationType.VOE.value
    elif "1099" in doc:
        norm["documentationType"] = DocumentationType.ALT_DOC.value
    elif "no ratio" in doc or "noratio" in doc:
        norm["documentationType"] = DocumentationType.NO_RATIO.value

    if not _is_dscr_form(norm):
        for name in DSCR_ONLY_FIELDS:
            norm.pop(name, None)
            norm.pop(_snake_name(name), None)
    return norm


def _snake_name(form_name: str) -> str:
    for snake, camel in FORM_FIELDS.items():
        if camel == form_name:
            return snake
    return form_name


def _form_value(data: Mapping[str, Any], name: str) -> Any:
    """Look up a LoanScenario field by its snake_case or form name."""
    value = data.get(name)
    if value is None or value == "":
        value = data.get(FORM_FIELDS.get(name, name))
    return None if value == "" else value


def _is_dscr_form(data: Mapping[str, Any]) -> bool:
    return (_form_value(data, "documentation_type") == DocumentationType.DSCR.value
            or _form_value(data, "loan_type") == "dscr")


def _parse_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "y")
    return bool(value)


def _loose_number(value: Any) -> float:
    """Parse a form number leniently; anything unparsable counts as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return parse_currency_amount(value)
    except ValueError:
        return 0.0


@dataclass(kw_only=True)
class LoanScenario:
    """Borrower and property inputs for one pricing request.

    Defaults mirror what the quote form submits when a field is left alone.
    """
    loan_amount: float = 400000.0
    property_value: float = 500000.0
    credit_score: int = 740
    dti: Optional[float] = None
    occupancy_type: Occupancy = Occupancy.PRIMARY
    property_type: PropertyType = PropertyType.SFR
    loan_purpose: LoanPurpose = LoanPurpose.PURCHASE
    loan_term: str = "30"
    loan_type: str = "nonqm"
    documentation_type: DocumentationType = DocumentationType.FULL_DOC
    prepay_period: PrepayPeriod = PrepayPeriod.THREE_YEAR
    property_zip: str = ""
    property_state: str = "CA"
    property_county: str = ""
    lock_days: int = 30
    citizenship: Citizenship = Citizenship.US_CITIZEN
    impound_type: ImpoundType = ImpoundType.ESCROWED
    amortization: str = "fixed"
    payment_type: PaymentType = PaymentType.PRINCIPAL_AND_INTEREST
    is_rural_property: bool = False
    is_non_warrantable_project: bool = False
    is_first_time_buyer: bool = False
    has_itin: bool = False
    gross_rent: Optional[float] = None
    housing_expense: Optional[float] = None
    dscr_value: Optional[float] = None
    dscr_tier: Optional[DscrTier] = None
    dscr_entity_type: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    """Unrecognized form fields, kept for history records."""

    def __post_init__(self):
        if self.is_dscr and self.occupancy_type != Occupancy.INVESTMENT:
            raise ScenarioValidationError([DSCR_ONLY_FOR_INVESTMENT])

    @property
    def is_dscr(self) -> bool:
        return self.documentation_type == DocumentationType.DSCR or self.loan_type == "dscr"

    @property
    def ltv(self) -> float:
        return calculate_ltv(self.loan_amount, self.property_value)

    @property
    def is_arm(self) -> bool:
        return self.amortization.startswith("arm")

    @property
    def is_interest_only(self) -> bool:
        return self.payment_type == PaymentType.INTEREST_ONLY

    @classmethod
    def from_form(cls, data: Mapping[str, Any]) -> LoanScenario:
        """Build a scenario from a normalized form payload.

        Either snake_case or form (camelCase) names are accepted. Blank values
        fall back to the defaults. For DSCR requests the ratio and tier are
        computed from rent and housing expense when not supplied.

        Raises:
            ScenarioValidationError: for unknown enumeration values, unparsable
                numbers, or DSCR documentation on a non-investment property.
        """
        values: Dict[str, Any] = {}
        errors: List[str] = []
        known = {f.name for f in fields(cls) if f.init} - {"extra"}

        for name in known:
            raw = _form_value(data, name)
            if raw is None:
                continue
            try:
                if name == "prepay_period":
                    values[name] = parse_prepay_period(raw)
                elif name in _ENUM_FIELDS:
                    values[name] = _ENUM_FIELDS[name](raw)
                elif name in _CURRENCY_FIELDS:
                    values[name] = parse_currency_amount(raw)
                elif name in _FLOAT_FIELDS:
                    values[name] = float(str(raw).replace(",", "").replace("%", ""))
                elif name in _INT_FIELDS:
                    values[name] = int(float(str(raw).replace(",", "")))
                elif name in _FLAG_FIELDS:
                    values[name] = _parse_flag(raw)
                else:
                    values[name] = str(raw)
            except ValueError:
                errors.append(f"Invalid value for {FORM_FIELDS.get(name, name)}: {raw!r}")

        if errors:
            raise ScenarioValidationError(errors)

        # Zero means "not provided" for these, as in the quote form.
        if not values.get("lock_days"):
            values.pop("lock_days", None)
        if not values.get("credit_score"):
            values.pop("credit_score", None)

        scenario_fields = set(FORM_FIELDS.values()) | known
        values["extra"] = {k: v for k, v in data.items() if k not in scenario_fields}

        scenario = cls(**values)
        if scenario.is_dscr:
            scenario.fill_dscr()
        return scenario

    def fill_dscr(self) -> None:
        """Derive the DSCR ratio and tier from rent and expense when missing."""
        if self.gross_rent and self.housing_expense and (self.dscr_value is None or self.dscr_tier is None):
            dscr = calculate_dscr(self.gross_rent, self.housing_expense)
            if self.dscr_value is None:
                self.dscr_value = dscr.value
            if self.dscr_tier is None:
                self.dscr_tier = dscr.tier
            logger.info(f"Computed DSCR {dscr.display} ({dscr.tier.value})")

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "extra"}
        data = {k: (v.value if hasattr(v, "value") else v) for k, v in data.items()}
        data["ltv"] = self.ltv
        return data


@dataclass
class ValidationResult:
    """Outcome of pre-submit validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def validate_scenario(data: Mapping[str, Any]) -> ValidationResult:
    """Check a normalized form before it is sent for pricing.

    Catches placeholder or out-of-range inputs that would only waste an engine
    call. Errors block pricing; warnings are informational.

    Args:
        data: Normalized form payload (snake_case or form names).

    Returns:
        ValidationResult with every problem found.
    """
    errors: List[str] = []
    warnings: List[str] = []

    loan_amount = _loose_number(_form_value(data, "loan_amount"))
    property_value = _loose_number(_form_value(data, "property_value"))
    credit_score = _loose_number(_form_value(data, "credit_score"))
    dti = _loose_number(_form_value(data, "dti"))
    supplied_ltv = _loose_number(data.get("ltv"))
    ltv = supplied_ltv or calculate_ltv(loan_amount, property_value)

    if loan_amount < 50000:
        errors.append("Loan amount must be at least $50,000")
    if loan_amount > 5000000:
        errors.append("Loan amount exceeds maximum ($5M)")
    if property_value < 125000:
        errors.append("Property value must be at least $125,000")
    if property_value > 100000000:
        errors.append("Property value exceeds maximum ($100M)")
    if loan_amount > property_value:
        errors.append("Loan amount cannot exceed property value")
    if credit_score < 620 or credit_score > 999:
        errors.append("Credit score must be 620-999")
    if dti < 1 or dti > 55:
        errors.append("DTI must be 1-55%")
    if ltv <= 0 or ltv > 90:
        errors.append("LTV must be between 0% and 90%")

    zip_code = _form_value(data, "property_zip")
    if not zip_code or len(str(zip_code)) != 5:
        errors.append("Valid 5-digit ZIP code is required")
    for name, label in (
            ("property_state", "Property state"),
            ("occupancy_type", "Property use"),
            ("property_type", "Property type"),
            ("loan_purpose", "Loan purpose"),
            ("loan_term", "Loan term"),
    ):
        if not _form_value(data, name):
            errors.append(f"{label} is required")

    if _form_value(data, "documentation_type") == DocumentationType.DSCR.value:
        if _form_value(data, "occupancy_type") != Occupancy.INVESTMENT.value:
            errors.append(DSCR_ONLY_FOR_INVESTMENT)
        gross_rent = _loose_number(_form_value(data, "gross_rent"))
        housing_expense = _loose_number(_form_value(data, "housing_expense"))
        if gross_rent <= 0:
            errors.append("Gross Rent is required for DSCR loans")
        if housing_expense <= 0:
            errors.append("Housing Expense is required for DSCR loans")
        if gross_rent > 0 and housing_expense > 0:
            ratio = gross_rent / housing_expense
            if ratio < 0.5:
                warnings.append(f"DSCR ratio {ratio:.3f} is very low - may not qualify")

    if _form_value(data, "loan_purpose") == LoanPurpose.CASHOUT.value and ltv > 85:
        errors.append(f"Cash-out refinance max LTV is 85%. Current: {ltv:.1f}%")

    if supplied_ltv and loan_amount > 0 and property_value > 0:
        calculated_ltv = loan_amount / property_value * 100
        if abs(calculated_ltv - supplied_ltv) > 1:
            warnings.append(f"LTV ({supplied_ltv}%) doesn't match Loan/Value calc ({calculated_ltv:.1f}%)")

    if ltv > 80:
        warnings.append("High LTV may limit program availability")
    if 0 < credit_score < 680:
        warnings.append("Better rates available with 680+ credit score")
    if dti > 43:
        warnings.append("DTI above 43% may require manual underwriting")
    if dti > 50:
        warnings.append("High DTI may significantly limit options")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
