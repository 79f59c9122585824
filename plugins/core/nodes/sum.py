"""Sum node: adds any number of numbers."""
from slotstudio.plugin_api import node, Port, VariadicNode


@node(
    type="core_sum",
    label="Sum",
    category="MATH",
    description="Adds every connected number",
    ports_in=[Port("term", "NUMBER", variadic=True)],
    ports_out=[Port("total", "NUMBER")],
)
class Sum(VariadicNode):
    join = " #"
