"""Concat node: joins any number of strings."""

NODE_INFO = {
    "type": "core_concat",
    "label": "Concat",
    "category": "TEXT",
    "description": "Joins every connected text input",
    "doc": (
        "Each connection to the last 'text' input adds another one, so any number "
        "of strings can be joined. Disconnecting an input closes the gap."
    ),
    "ports_in": [
        {"name": "separator", "type": "STRING"},
        {"name": "text", "type": "STRING", "variadic": True},
    ],
    "ports_out": [
        {"name": "text", "type": "STRING"},
    ],
}
