from .tool import Tool
from .provider import ToolProvider, CapabilityProvider, FUNCTION_DELIMITER, qualified_name, split_qualified_name
from .invoker import ToolInvoker, ToolCallRequest, ToolCallResult

__all__ = [
  "Tool",
  "ToolProvider",
  "CapabilityProvider",
  "FUNCTION_DELIMITER",
  "qualified_name",
  "split_qualified_name",
  "ToolInvoker",
  "ToolCallRequest",
  "ToolCallResult",
]
