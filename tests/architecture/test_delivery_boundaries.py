"""Delivery package boundary tests: adapters stay at the edge."""

from pytest_archon import archrule


def test_providers_do_not_know_each_other() -> None:
    """A provider must not import another provider or the dispatcher."""
    (
        archrule("providers_independence")
        .match("cqrs_ddd_email_otp.delivery.providers.*")
        .exclude("cqrs_ddd_email_otp.delivery.providers")
        .should_not_import("cqrs_ddd_email_otp.delivery.dispatcher")
        .should_not_import("cqrs_ddd_email_otp.delivery.factory")
        .should_not_import("cqrs_ddd_email_otp.manager")
        .check("cqrs_ddd_email_otp", only_direct_imports=True)
    )


def test_delivery_ignores_policy_and_flow() -> None:
    """Delivery must not import the policy engine or the flow orchestrator."""
    (
        archrule("delivery_independence")
        .match("cqrs_ddd_email_otp.delivery*")
        .should_not_import("cqrs_ddd_email_otp.policy")
        .should_not_import("cqrs_ddd_email_otp.flow")
        .should_not_import("cqrs_ddd_email_otp.manager")
        .check("cqrs_ddd_email_otp", only_direct_imports=True)
    )
