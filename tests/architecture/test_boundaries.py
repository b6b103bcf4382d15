from pytest_archon import archrule


def test_challenge_independence() -> None:
    """
    The challenge codec only knows the session port.
    It must not reach into delivery, policy or the flow.
    """
    (
        archrule("challenge_is_independent")
        .match("cqrs_ddd_email_otp.challenge")
        .should_not_import("cqrs_ddd_email_otp.delivery*")
        .should_not_import("cqrs_ddd_email_otp.policy")
        .should_not_import("cqrs_ddd_email_otp.flow")
        .should_not_import("cqrs_ddd_email_otp.manager")
        .check("cqrs_ddd_email_otp", only_direct_imports=True)
    )


def test_policy_isolation() -> None:
    """
    Policy voters are pure functions of the request context.
    They must not depend on delivery or challenge state.
    """
    (
        archrule("policy_isolation")
        .match("cqrs_ddd_email_otp.policy")
        .should_not_import("cqrs_ddd_email_otp.delivery*")
        .should_not_import("cqrs_ddd_email_otp.challenge")
        .should_not_import("cqrs_ddd_email_otp.manager")
        .check("cqrs_ddd_email_otp", only_direct_imports=True)
    )


def test_manager_ignores_concrete_providers() -> None:
    """
    The challenge manager talks to the dispatcher, never to a concrete provider.
    """
    (
        archrule("manager_provider_isolation")
        .match("cqrs_ddd_email_otp.manager")
        .match("cqrs_ddd_email_otp.flow")
        .should_not_import("cqrs_ddd_email_otp.delivery.providers*")
        .check("cqrs_ddd_email_otp", only_direct_imports=True)
    )


def test_ports_layering() -> None:
    """
    Ports (protocols) should not depend on adapters (implementations).
    """
    (
        archrule("ports_layering")
        .match("cqrs_ddd_email_otp.ports")
        .should_not_import("cqrs_ddd_email_otp.delivery.providers*")
        .should_not_import("cqrs_ddd_email_otp.session")
        .should_not_import("cqrs_ddd_email_otp.clock")
        .check("cqrs_ddd_email_otp", only_direct_imports=True)
    )
