from pytest_archon import archrule

ENGINE_PACKAGES = (
    "reliable_mediator.inbox*",
    "reliable_mediator.outbox*",
    "reliable_mediator.scheduling*",
    "reliable_mediator.sagas*",
)


def test_primitives_isolation() -> None:
    """
    Primitives layer is the lowest level.
    It must not import ports, the pipeline, the engine or adapters.
    """
    rule = (
        archrule("primitives_isolation")
        .match("reliable_mediator.primitives*")
        .should_not_import("reliable_mediator.ports*")
        .should_not_import("reliable_mediator.pipeline*")
        .should_not_import("reliable_mediator.adapters*")
    )
    for package in ENGINE_PACKAGES:
        rule = rule.should_not_import(package)
    rule.check("reliable_mediator")


def test_ports_layering() -> None:
    """
    Ports (interfaces) should not depend on Adapters (implementations)
    nor on the engine that consumes them.
    """
    rule = (
        archrule("ports_layering")
        .match("reliable_mediator.ports*")
        .should_not_import("reliable_mediator.adapters*")
    )
    for package in ENGINE_PACKAGES:
        rule = rule.should_not_import(package)
    rule.check("reliable_mediator")


def test_engine_adapters_isolation() -> None:
    """
    Inbox, outbox, scheduling and sagas talk to storage through the ports only.
    Adapters are plugins and must stay invisible to the engine.
    """
    (
        archrule("engine_adapters_isolation")
        .match("reliable_mediator.inbox*")
        .match("reliable_mediator.outbox*")
        .match("reliable_mediator.scheduling*")
        .match("reliable_mediator.sagas*")
        .should_not_import("reliable_mediator.adapters*")
        .check("reliable_mediator")
    )


def test_pipeline_does_not_know_the_engine() -> None:
    """
    The pipeline hosts the inbox and outbox hooks but never imports them.
    """
    rule = (
        archrule("pipeline_independence")
        .match("reliable_mediator.pipeline*")
        .should_not_import("reliable_mediator.adapters*")
    )
    for package in ENGINE_PACKAGES:
        rule = rule.should_not_import(package)
    rule.check("reliable_mediator")
