# Percentage of each income stream counted towards serviceability.
INCOME_SHADING = {
    "PRIMARY": {"percentage": 100.0, "description": "Regular employment income"},
    "SUPPLEMENTARY": {"percentage": 90.0, "description": "Overtime, bonuses, commissions"},
    "OTHER": {"percentage": 90.0, "description": "Government benefits, dividends"},
    "RENTAL": {"percentage": 90.0, "description": "Rental property income"},
}

# Debt weightings (percent) and flat annual expense amounts.
DEBT_SHADING = {
    "CREDIT_CARD": {"percentage": 3.8, "description": "Share of card limit treated as a monthly commitment"},
    "EXISTING_LOAN": {"percentage": 100.0, "description": "Existing loan repayments"},
    "LIVING_EXPENSE_BASE": {"amount": 20000.0, "description": "Base annual living expense"},
    "DEPENDENT_COST": {"amount": 6000.0, "description": "Additional annual cost per dependent"},
    "INTEREST_BUFFER": {"percentage": 2.0, "description": "Buffer added to the rate for assessment"},
}

# (floor, marginal rate, tax payable at floor)
TAX_BRACKETS = [
    (0.0, 0.0, 0.0),
    (18200.0, 0.19, 0.0),
    (45000.0, 0.325, 5092.0),
    (120000.0, 0.37, 29467.0),
    (180000.0, 0.45, 51667.0),
]

# Progressive transfer duty brackets and first home buyer relief by state.
# Each base_amount is the duty owed at its threshold under the bracket below.
STAMP_DUTY_RATES = {
    "NSW": {
        "standard": [
            {"threshold": 0, "rate": 0.0125, "base_amount": 0},
            {"threshold": 100000, "rate": 0.02, "base_amount": 1250},
            {"threshold": 300000, "rate": 0.035, "base_amount": 5250},
            {"threshold": 1000000, "rate": 0.045, "base_amount": 29750},
            {"threshold": 3000000, "rate": 0.07, "base_amount": 119750},
        ],
        "first_home_buyer": {"exemption_threshold": 650000, "concession_threshold": 800000, "concession_rate": 0.5},
    },
    "VIC": {
        "standard": [
            {"threshold": 0, "rate": 0.014, "base_amount": 0},
            {"threshold": 130000, "rate": 0.024, "base_amount": 1820},
            {"threshold": 440000, "rate": 0.05, "base_amount": 9260},
            {"threshold": 960000, "rate": 0.055, "base_amount": 35260},
        ],
        "first_home_buyer": {"exemption_threshold": 600000, "concession_threshold": 750000, "concession_rate": 0.25},
    },
    "QLD": {
        "standard": [
            {"threshold": 0, "rate": 0.01, "base_amount": 0},
            {"threshold": 175000, "rate": 0.02, "base_amount": 1750},
            {"threshold": 540000, "rate": 0.0375, "base_amount": 9050},
            {"threshold": 1000000, "rate": 0.045, "base_amount": 26300},
        ],
        "first_home_buyer": {"exemption_threshold": 500000, "concession_threshold": 550000, "concession_rate": 0.3},
    },
    "WA": {
        "standard": [
            {"threshold": 0, "rate": 0.019, "base_amount": 0},
            {"threshold": 120000, "rate": 0.0285, "base_amount": 2280},
            {"threshold": 360000, "rate": 0.0305, "base_amount": 9120},
            {"threshold": 725000, "rate": 0.0515, "base_amount": 20252.5},
        ],
        "first_home_buyer": {"exemption_threshold": 430000, "concession_threshold": 530000, "concession_rate": 0.4},
    },
    "SA": {
        "standard": [
            {"threshold": 0, "rate": 0.01, "base_amount": 0},
            {"threshold": 50000, "rate": 0.02, "base_amount": 500},
            {"threshold": 200000, "rate": 0.03, "base_amount": 3500},
            {"threshold": 250000, "rate": 0.035, "base_amount": 5000},
            {"threshold": 500000, "rate": 0.055, "base_amount": 13750},
        ],
        "first_home_buyer": {"exemption_threshold": 0, "concession_threshold": 0, "concession_rate": 0.0},
    },
    "TAS": {
        "standard": [
            {"threshold": 0, "rate": 0.0175, "base_amount": 0},
            {"threshold": 100000, "rate": 0.0225, "base_amount": 1750},
            {"threshold": 200000, "rate": 0.035, "base_amount": 4000},
            {"threshold": 500000, "rate": 0.045, "base_amount": 14500},
        ],
        "first_home_buyer": {"exemption_threshold": 0, "concession_threshold": 500000, "concession_rate": 0.5},
    },
    "ACT": {
        "standard": [
            {"threshold": 0, "rate": 0.016, "base_amount": 0},
            {"threshold": 200000, "rate": 0.0242, "base_amount": 3200},
            {"threshold": 300000, "rate": 0.0332, "base_amount": 5620},
            {"threshold": 500000, "rate": 0.0412, "base_amount": 12260},
            {"threshold": 750000, "rate": 0.0512, "base_amount": 22560},
            {"threshold": 1000000, "rate": 0.0612, "base_amount": 35360},
            {"threshold": 1455000, "rate": 0.0712, "base_amount": 63206},
        ],
        "first_home_buyer": {"exemption_threshold": 750000, "concession_threshold": 750000, "concession_rate": 1.0},
    },
    "NT": {
        "standard": [
            {"threshold": 0, "rate": 0.015, "base_amount": 0},
            {"threshold": 525000, "rate": 0.0375, "base_amount": 7875},
            {"threshold": 3000000, "rate": 0.0575, "base_amount": 100687.5},
        ],
        "first_home_buyer": {"exemption_threshold": 500000, "concession_threshold": 650000, "concession_rate": 0.5},
    },
}

DEFAULT_JURISDICTION = "NSW"

# Government transfer and mortgage registration fees: flat + share of value.
OTHER_CHARGES = {"flat": 2000.0, "pct_of_value": 0.1}

# Headline variable rate card by LVR bucket, used when no rate table is loaded.
LVR_RATE_CARD = {
    "0_60": 5.60,
    "60_70": 5.70,
    "70_80": 5.90,
    "80_85": 6.10,
    "85_90": 6.30,
    "90_95": 6.50,
}

# Adjustment to a caller supplied base rate by LVR bucket.
LVR_RATE_ADJUSTMENTS = {
    "0_60": -0.40,
    "60_70": -0.30,
    "70_80": -0.20,
    "80_85": -0.10,
    "85_90": 0.10,
    "90_95": 0.30,
}

FIXED_TERM_ADJUSTMENTS = {
    "variable": 0.0,
    "fixed_1": -0.10,
    "fixed_2": -0.05,
    "fixed_3": 0.05,
    "fixed_4": 0.0,
    "fixed_5": 0.15,
}

RATE_ADJUSTMENTS = {
    "investor": 0.20,
    "interest_only": 0.30,
    "offset": 0.10,
}

COMPARISON_RATE_LOADINGS = {
    "base": 0.20,
    "investor": 0.10,
    "interest_only": 0.10,
    "offset": 0.05,
}

DEFAULT_RATE = 5.74
DEFAULT_COMPARISON_RATE = 5.65

# Seed LVR when the buyer has no deposit.
DEFAULT_SEED_LVR = 80.0

MAX_ITERATIONS = 10
PROPERTY_REFINEMENT_ROUNDS = 5
LOAN_TOLERANCE = 1000.0
RATE_TOLERANCE = 0.01
