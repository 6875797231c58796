"""
Services module for the Grant Review Engine.

    snowflake               connection factory used by repositories
    state_machine           assignment / assessment transition tables
    assignment_state        AssignmentStateTracker
    assignment_distributor  AssignmentDistributor
    assessment_lifecycle    AssessmentLifecycleManager
    results_aggregator      ResultsAggregator

Import from the submodules; the repositories import this package for the
Snowflake connection.
"""
