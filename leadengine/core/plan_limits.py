"""
Membership plan catalog and benefit constants.

Single source of truth for tier ordering, default benefits and the seed catalog.
None on a numeric dimension means unlimited for that dimension.
"""
from typing import Dict, List, Optional, Any

USER_CATEGORIES: List[str] = ["customer", "contractor"]
BILLING_PERIODS: List[str] = ["monthly", "yearly"]

TIER_RANK: Dict[str, int] = {"basic": 1, "standard": 2, "premium": 3}
BILLING_PERIOD_RANK: Dict[str, int] = {"monthly": 1, "yearly": 2}

# Full duration of one purchase, in days
PLAN_DURATION_DAYS: Dict[str, int] = {
    "monthly": 30,
    "yearly": 365,
}

# Leads granted per billing period = leads_per_month * multiplier
LEAD_ALLOCATION_MULTIPLIER: Dict[str, int] = {
    "monthly": 1,
    "yearly": 12,
}

DEFAULT_ACCESS_DELAY_HOURS = 24
DEFAULT_PLATFORM_FEE_PERCENT = 100
DEFAULT_ANNUAL_DISCOUNT_RATE = 15

CONTRACTOR_FEATURES: List[str] = [
    "featured_listing",
    "off_market_access",
    "publicity_references",
    "verified_badge",
    "financing_support",
    "private_network",
]

CUSTOMER_FEATURES: List[str] = [
    "free_calculators",
    "unlimited_requests",
    "contractor_reviews_visible",
    "priority_contractor_access",
    "property_valuation_support",
    "certified_aas_work",
    "free_evaluation",
]

BOOLEAN_FEATURES: List[str] = CONTRACTOR_FEATURES + CUSTOMER_FEATURES

# Benefits for contractors without an active membership (basic-equivalent)
DEFAULT_CONTRACTOR_BENEFITS: Dict[str, Any] = {
    "tier": "basic",
    "leads_per_month": 25,
    "access_delay_hours": 24,
    "radius_km": 15,
    "max_properties": None,
    "platform_fee_percent": DEFAULT_PLATFORM_FEE_PERCENT,
    "property_type": "domestic",
    **{feature: False for feature in BOOLEAN_FEATURES},
}


def _plan(name: str, category: str, tier: str, monthly_price: int, yearly_price: int, **benefits) -> Dict[str, Any]:
    plan = {
        "name": name,
        "description": f"{tier.title()} membership for {category}s",
        "user_category": category,
        "tier": tier,
        "monthly_price": monthly_price,
        "yearly_price": yearly_price,
        "annual_discount_rate": DEFAULT_ANNUAL_DISCOUNT_RATE,
        "is_active": True,
        "leads_per_month": None,
        "access_delay_hours": DEFAULT_ACCESS_DELAY_HOURS,
        "radius_km": None,
        "max_properties": None,
        "platform_fee_percent": DEFAULT_PLATFORM_FEE_PERCENT,
        "property_type": "domestic",
        **{feature: False for feature in BOOLEAN_FEATURES},
    }
    plan.update(benefits)
    return plan


# Seed catalog (prices in cents)
PLAN_CATALOG: List[Dict[str, Any]] = [
    _plan("Basic Contractor Plan", "contractor", "basic", 4999, 59988,
          leads_per_month=25, access_delay_hours=24, radius_km=15),
    _plan("Standard Contractor Plan", "contractor", "standard", 9999, 119988,
          leads_per_month=40, access_delay_hours=12, radius_km=50,
          verified_badge=True, publicity_references=True),
    _plan("Premium Contractor Plan", "contractor", "premium", 19999, 239988,
          leads_per_month=None, access_delay_hours=0, radius_km=None,
          featured_listing=True, off_market_access=True, publicity_references=True,
          verified_badge=True, financing_support=True, private_network=True),
    _plan("Basic Customer Plan", "customer", "basic", 1999, 23988,
          max_properties=1, platform_fee_percent=100),
    _plan("Standard Customer Plan", "customer", "standard", 3999, 47988,
          max_properties=5, platform_fee_percent=50,
          free_calculators=True, contractor_reviews_visible=True),
    _plan("Premium Customer Plan", "customer", "premium", 7999, 95988,
          max_properties=None, platform_fee_percent=0, property_type="commercial",
          free_calculators=True, unlimited_requests=True, contractor_reviews_visible=True,
          priority_contractor_access=True, property_valuation_support=True,
          certified_aas_work=True, free_evaluation=True),
]


def upgrade_rank(tier: str, billing_period: str) -> tuple:
    """Ordering key for upgrades: tier first, then yearly above monthly."""
    return (TIER_RANK.get(tier, 0), BILLING_PERIOD_RANK.get(billing_period, 0))


def lead_allocation(leads_per_month: Optional[int], billing_period: str) -> Optional[int]:
    """Leads granted for one billing period. None means unlimited."""
    if leads_per_month is None:
        return None
    return leads_per_month * LEAD_ALLOCATION_MULTIPLIER.get(billing_period, 1)
