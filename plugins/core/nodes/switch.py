"""Switch node: routes one value to any number of branches."""
from slotstudio.plugin_api import node, Port, VariadicNode


@node(
    type="core_switch",
    label="Switch",
    category="ROUTING",
    description="Fans a value out to numbered branches",
    doc="A new 'case' output appears once the last one receives its first link.",
    ports_in=[Port("value"), Port("selector", "NUMBER")],
    ports_out=[Port("case", variadic=True)],
)
class Switch(VariadicNode):
    pass
