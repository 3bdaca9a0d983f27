"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest


@pytest.fixture
def generator():
    """Template PDF generator (US Letter)."""
    from tests.fixtures.pdf_generator import TemplatePDFGenerator
    return TemplatePDFGenerator()


@pytest.fixture
def minimal_quote_data():
    """Smallest quote a front-end can send."""
    return {"clientName": "Acme Corp", "totalCost": 1200}


@pytest.fixture
def acme_quote():
    """Fully populated quote."""
    from quotemerge.core.models import (
        Quote, Configuration, Calculation, PricingTier, DealData
    )
    return Quote(
        client_name="Jane Doe",
        client_email="jane@acme.example",
        company="Acme Corp",
        configuration=Configuration(
            migration_type="Slack",
            number_of_users=150,
            data_size_gb=500,
            number_of_instances=2,
            instance_type="Standard",
            duration_months=6,
            start_date="2026-01-05",
            end_date="2026-07-05",
        ),
        calculation=Calculation(
            user_cost=600.0,
            data_cost=300.0,
            migration_cost=250.0,
            instance_cost=50.0,
            total_cost=1200.0,
        ),
        selected_tier=PricingTier(name="Advanced", features=("Channels", "Direct messages", "Files")),
        deal=DealData(deal_id="D-77", deal_name="Acme migration", amount=1200.0, stage="Proposal"),
        quote_id="q-1",
    )


@pytest.fixture
def zero_user_quote(acme_quote):
    """Quote with no users, so per-user figures are undefined."""
    from dataclasses import replace
    return replace(acme_quote, configuration=replace(acme_quote.configuration, number_of_users=0))


@pytest.fixture
def signed_quote(acme_quote):
    from dataclasses import replace
    from quotemerge.core.models import SignatureBlock
    return replace(
        acme_quote,
        vendor_signature=SignatureBlock(signer_name="Sam Vendor", title="Account Executive", date="2026-01-02", style=1),
        client_signature=SignatureBlock(signer_name="Jane Doe", title="CIO", date="2026-01-03", style=3),
    )


@pytest.fixture
def engine():
    """Merge engine with default configuration."""
    from quotemerge.core.pipeline import MergeEngine
    return MergeEngine()


@pytest.fixture
def single_page_pdf(generator):
    return generator.single_page()


@pytest.fixture
def agreement_pdf(generator):
    """11-page agreement."""
    return generator.agreement(pages=11)


@pytest.fixture
def token_pdf(generator):
    """One page with "For {{Company Name}}"."""
    return generator.token_page()


@pytest.fixture
def split_token_pdf(generator):
    return generator.split_token_page()
