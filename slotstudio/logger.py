"""Node-tagged logger shared by the graph and node implementations."""
from typing import Callable, Optional


class NodeLogger:
    """Logger that tags messages with node context.

    The graph sets context before it dispatches a connection change to a node
    and clears it afterwards. Node code just calls logger.info(), logger.debug(), etc.
    """

    def __init__(self):
        self._handler: Optional[Callable] = None
        self._node_id: Optional[int] = None
        self._node_type: Optional[str] = None

    def _set_context(self, node_id, node_type: str, handler: Callable):
        self._node_id = node_id
        self._node_type = node_type
        self._handler = handler

    def _clear_context(self):
        self._node_id = None
        self._node_type = None
        self._handler = None

    def _emit(self, level: str, message: str):
        if self._handler:
            self._handler(level, self._node_id, self._node_type, message)
        else:
            print(f"[{level}] [{self._node_type}:{self._node_id}] {message}")

    def debug(self, message: str):
        self._emit("DEBUG", message)

    def info(self, message: str):
        self._emit("INFO", message)

    def warn(self, message: str):
        self._emit("WARN", message)

    def error(self, message: str):
        self._emit("ERROR", message)


# Singleton logger instance. Graph._dispatch sets its node context around each
# on_connections_change call; outside of that it prints untagged.
logger = NodeLogger()
