# tests/conftest.py

"""
Pytest Fixtures - Shared repositories, services and seed data

Services run against the in-memory repositories in tests/fakes.py; the
Snowflake repositories are covered separately with a mocked connector in
test_repositories.py.
"""

import os

# Settings require Snowflake credentials; nothing in the suite connects.
os.environ.setdefault("SNOWFLAKE_ACCOUNT", "test-account")
os.environ.setdefault("SNOWFLAKE_USER", "test-user")
os.environ.setdefault("SNOWFLAKE_PASSWORD", "test-password")
os.environ.setdefault("SNOWFLAKE_DATABASE", "GRANT_REVIEW")
os.environ.setdefault("SNOWFLAKE_SCHEMA", "PUBLIC")
os.environ.setdefault("SNOWFLAKE_WAREHOUSE", "COMPUTE_WH")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
from fastapi.testclient import TestClient

from grant_review.core import dependencies
from grant_review.main import app
from grant_review.services.assessment_lifecycle import AssessmentLifecycleManager
from grant_review.services.assignment_distributor import AssignmentDistributor
from grant_review.services.assignment_state import AssignmentStateTracker
from grant_review.services.results_aggregator import ResultsAggregator
from tests.fakes import (
    CRITERIA,
    FakeAssessmentRepository,
    FakeAssignmentRepository,
    FakeFundingCallRepository,
    InMemoryStore,
)


# =============================================================================
# STORE AND REPOSITORIES
# =============================================================================

@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def assignment_repo(store):
    return FakeAssignmentRepository(store)


@pytest.fixture
def assessment_repo(store):
    return FakeAssessmentRepository(store)


@pytest.fixture
def funding_call_repo(store):
    return FakeFundingCallRepository(store)


# =============================================================================
# SERVICES
# =============================================================================

@pytest.fixture
def state_tracker(assignment_repo):
    return AssignmentStateTracker(assignment_repo)


@pytest.fixture
def distributor(assignment_repo):
    return AssignmentDistributor(assignment_repo)


@pytest.fixture
def lifecycle(assessment_repo, assignment_repo, state_tracker):
    return AssessmentLifecycleManager(assessment_repo, assignment_repo, state_tracker)


@pytest.fixture
def aggregator(store, assessment_repo, assignment_repo, funding_call_repo):
    return ResultsAggregator(
        assessment_repo,
        assignment_repo,
        funding_call_repo,
        default_variance_threshold=20.0,
        default_assessors_per_application=2,
        clock=store.clock.now,
    )


# =============================================================================
# SEED DATA
# =============================================================================

@pytest.fixture
def call_id(store):
    """Funding call requiring two assessors, 20% variance threshold."""
    return store.add_call(criteria=CRITERIA)


@pytest.fixture
def application_ids(store, call_id):
    """Three submitted applications: APP-001..APP-003."""
    return [
        store.add_application(call_id, f"APP-00{i}", applicant_name=f"Applicant {i}")
        for i in (1, 2, 3)
    ]


@pytest.fixture
def assessor_ids(store):
    """Two assessors, X and Y."""
    return [store.add_assessor("Xavier Moss"), store.add_assessor("Yara Quinn")]


@pytest.fixture
def coordinator_id(store):
    return store.add_assessor("Coordinator")


@pytest.fixture
def assignment(distributor, application_ids, assessor_ids, coordinator_id):
    """A single PENDING assignment of APP-001 to X."""
    created = distributor.create_bulk(application_ids[:1], assessor_ids[:1], coordinator_id)
    return created[0]


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture
def client(store, assignment_repo, assessment_repo, funding_call_repo,
           distributor, lifecycle, aggregator):
    """TestClient with every repository and service backed by the in-memory store."""
    overrides = {
        dependencies.get_assignment_repository: lambda: assignment_repo,
        dependencies.get_assessment_repository: lambda: assessment_repo,
        dependencies.get_funding_call_repository: lambda: funding_call_repo,
        dependencies.get_assignment_distributor: lambda: distributor,
        dependencies.get_lifecycle_manager: lambda: lifecycle,
        dependencies.get_results_aggregator: lambda: aggregator,
    }
    app.dependency_overrides.update(overrides)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
