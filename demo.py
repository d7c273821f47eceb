#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Lending Pool Step by Step

A pedagogical walkthrough of the lending pool. Each step builds on the
previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation     - The empty pool, funding accounts, first deposit
  4-5:  Rules          - Rejections, borrowing against collateral
  6-7:  Time           - Lazy interest, repayment
  8-9:  Limits & Hosts - Reserve shortfalls, the host adapter, conservation

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass, field
from decimal import Decimal
import sys

from lending_pool import (
    EngineConfig, LendingService, LendingError, SignedOrigin, create_in_memory_service,
    Call, dispatch, query, POOL_RESERVE_ACCOUNT,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    alice_funds: Decimal = Decimal("1000")
    bob_funds: Decimal = Decimal("5000")

    alice_deposit: Decimal = Decimal("800")
    bob_deposit: Decimal = Decimal("2000")
    alice_loan: Decimal = Decimal("300")

    # One year of 6-second heights
    heights_per_year: int = 5_256_000

    # Engine overrides, as a host would load them; unset keys keep defaults
    engine: dict = field(default_factory=lambda: {"collateral_ratio": "0.75"})


CONFIG = DemoConfig()

# Global state for interactive mode
QUICK_MODE = "--quick" in sys.argv

ALICE = SignedOrigin("alice")
BOB = SignedOrigin("bob")


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def attempt(label: str, operation, *args):
    """Run an operation, reporting a LendingError instead of raising it."""
    print(f">>> {label}")
    try:
        return operation(*args)
    except LendingError as exc:
        print(f"    raised {type(exc).__name__}")
        return None


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_empty_pool() -> LendingService:
    """Create a pool with the default deployment parameters."""
    step_header(1, "The Empty Pool",
        "A pool is a reserve account plus one record per participant.")

    print(f">>> config = EngineConfig.from_mapping({CONFIG.engine})")
    config = EngineConfig.from_mapping(CONFIG.engine)
    print(">>> service = create_in_memory_service(config, verbose=True)")
    service = create_in_memory_service(config, verbose=True)

    section_header("Parameters")
    print(f"Deposit rate per height:  {config.deposit_rate}")
    print(f"Borrow rate per height:   {config.borrow_rate}")
    print(f"Heights per year:         {config.periods_per_year}")
    print(f"Collateral ratio:         {config.collateral_ratio}")
    print(f"Deposit APY:              {service.get_deposit_apy():.6f}")
    print(f"Borrowing APY:            {service.get_borrowing_apy():.6f}")
    print(f"Pool reserve:             {service.get_pool_reserve()}")

    section_header("Key Insight")
    print("""
    Rates are per height and compound once per height. The APY queries
    compound them over a year of heights: 5% for deposits, 7% for loans.
    """)
    return service


def step_02_fund_accounts(service: LendingService) -> LendingService:
    """Give alice and bob currency to work with."""
    step_header(2, "Funding Accounts",
        "The pool settles against a currency ledger it does not own.")

    currency = service.gateway.currency
    print('>>> currency.register_account("alice"); currency.issue("alice", 1000)')
    currency.register_account("alice")
    currency.issue("alice", CONFIG.alice_funds)
    currency.register_account("bob")
    currency.issue("bob", CONFIG.bob_funds)
    print(f"Reserve account registered: {currency.is_registered(POOL_RESERVE_ACCOUNT)}")

    section_header("Conservation")
    result = currency.verify_conservation()
    print(f"Total supply: {result['supply']}  (valid: {result['valid']})")
    print(f"Issued:       {result['issued']}")
    return service


def step_03_first_deposit(service: LendingService) -> LendingService:
    """Deposit into the pool."""
    step_header(3, "First Deposit",
        "A deposit moves currency into the reserve and credits the depositor.")

    attempt("service.deposit(ALICE, 800)", service.deposit, ALICE, CONFIG.alice_deposit)
    attempt("service.deposit(BOB, 2000)", service.deposit, BOB, CONFIG.bob_deposit)

    section_header("State")
    print(f"alice deposit balance: {service.get_balance('alice')}")
    print(f"pool reserve:          {service.get_pool_reserve()}")
    print(f"alice record:          {service.store.get('alice')}")
    return service


# ============================================================================
# PHASE 2: RULES (Steps 4-5)
# ============================================================================

def step_04_rejections(service: LendingService) -> LendingService:
    """Operations that violate a rule change nothing."""
    step_header(4, "Rejected Operations",
        "Every failure is typed, and a failed operation leaves no trace.")

    events_before = len(service.events)
    attempt('service.withdraw(SignedOrigin("carol"), 1)',
            service.withdraw, SignedOrigin("carol"), Decimal("1"))
    attempt("service.withdraw(ALICE, 5000)", service.withdraw, ALICE, Decimal("5000"))
    attempt('service.deposit("alice", 1)  # unsigned origin',
            service.deposit, "alice", Decimal("1"))

    section_header("Result")
    print(f"Events emitted by the rejections: {len(service.events) - events_before}")
    return service


def step_05_borrowing(service: LendingService) -> LendingService:
    """Borrow against the deposit."""
    step_header(5, "Borrowing Against Collateral",
        "Allowed borrowing is deposit * collateral_ratio - debt.")

    info = service.get_allowed_borrowing_amount("alice")
    print(f"alice may borrow: {info.allowed_borrowing_amount}")

    attempt("service.borrow(ALICE, 300)", service.borrow, ALICE, CONFIG.alice_loan)
    info = service.get_allowed_borrowing_amount("alice")
    print(f"alice debt:       {info.borrowing_balance}")
    print(f"alice may borrow: {info.allowed_borrowing_amount}")

    attempt("service.borrow(ALICE, 301)", service.borrow, ALICE, Decimal("301"))
    return service


# ============================================================================
# PHASE 3: TIME (Steps 6-7)
# ============================================================================

def step_06_time_passes(service: LendingService) -> LendingService:
    """Advance one year and read accrued values."""
    step_header(6, "Lazy Interest",
        "Interest is computed on read. Nothing is written while time passes.")

    record_before = service.store.get("alice")
    print(">>> service.clock.advance(5_256_000)")
    service.clock.advance(CONFIG.heights_per_year)

    print(f"alice deposit balance: {service.get_balance('alice'):.6f}")
    print(f"alice debt:            {service.get_debt('alice'):.6f}")
    print(f"record unchanged:      {service.store.get('alice') == record_before}")
    return service


def step_07_repayment(service: LendingService) -> LendingService:
    """Repay more than is owed."""
    step_header(7, "Repayment",
        "Repayments above the debt are clamped; only the debt is transferred.")

    event = attempt("service.repay(ALICE, 1000)", service.repay, ALICE, Decimal("1000"))
    print(f"amount actually repaid: {event.amount:.6f}")
    print(f"alice debt now:         {service.get_debt('alice')}")
    return service


# ============================================================================
# PHASE 4: LIMITS & HOSTS (Steps 8-9)
# ============================================================================

def step_08_reserve_limits(service: LendingService) -> LendingService:
    """Interest is a claim on the reserve, not new currency."""
    step_header(8, "Reserve Limits",
        "Accrued interest can exceed what the reserve actually holds.")

    attempt("service.withdraw(ALICE, <full balance>)",
            service.withdraw, ALICE, service.get_balance("alice"))

    bob_balance = service.get_balance("bob")
    print(f"bob deposit balance: {bob_balance:.6f}")
    print(f"pool reserve:        {service.get_pool_reserve():.6f}")
    attempt("service.withdraw(BOB, <full balance>)", service.withdraw, BOB, bob_balance)

    section_header("Host Adapter")
    print('>>> query(service, "getBalance", "bob")')
    print(f"    {query(service, 'getBalance', 'bob')}")
    print('>>> dispatch(service, Call("withdraw", BOB, "100"))')
    result = dispatch(service, Call("withdraw", BOB, "100"))
    print(f"    {result.outcome.name} {result.event}")
    return service


def step_09_conservation_finale(service: LendingService) -> LendingService:
    """The currency ledger never gained or lost a unit."""
    step_header(9, "Conservation Finale",
        "Every event is mirrored by exactly one transfer.")

    currency = service.gateway.currency
    for account in ("alice", "bob", POOL_RESERVE_ACCOUNT):
        print(f"{account:>6}: {currency.balance_of(account)}")
    section_header("Pool Records")
    for account in service.store.accounts():
        print(f"{account:>6}: balance {service.get_balance(account):.6f}  debt {service.get_debt(account):.6f}")

    result = currency.verify_conservation()
    print(f"\nTotal supply: {result['supply']}  (valid: {result['valid']})")
    print(f"Events: {[e.name for e in service.events]}")
    return service


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       LENDING POOL - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    service = step_01_empty_pool()
    wait_for_enter()

    for step in (step_02_fund_accounts, step_03_first_deposit, step_04_rejections,
                 step_05_borrowing, step_06_time_passes, step_07_repayment,
                 step_08_reserve_limits, step_09_conservation_finale):
        service = step(service)
        wait_for_enter()

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See lending_pool/service.py for the operation sequence
      - Run tests: pytest tests/
    """)
    return service


if __name__ == "__main__":
    main()
