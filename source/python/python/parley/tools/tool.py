import json
import inspect
import re

from typing import get_type_hints, Optional, get_origin, get_args, List, Dict, Union
from functools import wraps
from docstring_parser import parse

from .protocol import InvokableTool
from ..errors import MalformedArgumentsError, ToolExecutionError
from ..logs.logs import DebugContext

# Maximum size of the JSON arguments of a single call
MAX_JSON_SIZE = 1024 * 1024  # 1MB

# Names are joined with "-" into qualified names, so neither part may contain it
TOOL_NAME_PATTERN = r"^[a-zA-Z0-9_]{1,64}$"


class Tool(InvokableTool, DebugContext):
  """
  Expose a python callable (sync or async) as a function tool.

  The JSON schema sent to the remote service is derived from the signature and
  the docstring of the callable:

    async def get_weather(city: str, days: int = 1) -> str:
      \"\"\"Get the weather forecast.

      Args:
        city (str): Name of the city.
        days (int): Number of days.
      \"\"\"

    tool = Tool(get_weather)
  """

  _logger = None

  @classmethod
  def class_logger(cls):
    if cls._logger:
      return cls._logger
    else:
      from ..logs.logs import get_logger

      cls._logger = get_logger("tool")
      return cls._logger

  def __init__(self, func, name: Optional[str] = None, description: Optional[str] = None):
    self.logger = Tool.class_logger()
    f_name, spec = function_spec(func, name=name, description=description)
    self.func = wrap(func)
    self.signature = inspect.signature(func)
    self.type_hints = _type_hints(func)
    self.name = f_name
    self._spec = spec
    if re.match(TOOL_NAME_PATTERN, self.name) is None:
      raise ValueError(f"Tool name '{self.name}' may only contain [a-zA-Z0-9_] characters")

  async def spec(self) -> dict:
    return self._spec

  async def invoke(self, json_argument: Optional[str]) -> str:
    args = parse_arguments(self.name, json_argument)
    result = await self.call(args)
    return result if isinstance(result, str) else str(result)

  async def call(self, args: dict):
    """
    Validate ``args`` against the signature, coerce them to the annotated types and run the tool.

    Raises:
      MalformedArgumentsError: If the arguments do not fit the signature.
      ToolExecutionError: If the tool itself fails.
    """
    args = self._validate_and_coerce(args)
    with self.debug(f"Invoke tool: '{self.name}'", f"invoked tool: '{self.name}'"):
      self.logger.debug(f"The tool arguments are: {args}")
      try:
        result = await self.func(**args)
      except Exception as e:
        self.logger.error(f"Tool '{self.name}' execution failed: {type(e).__name__}: {e}")
        raise ToolExecutionError(self.name, e) from e
      self.logger.debug(f"The tool call succeeded: {result!r}")
      return result

  def _validate_and_coerce(self, args: dict) -> dict:
    param_names = set(self.signature.parameters.keys())
    provided_args = set(args.keys())

    # Check for unexpected arguments
    extra_args = provided_args - param_names
    if extra_args:
      raise MalformedArgumentsError(self.name, None, f"Unexpected arguments: {', '.join(sorted(extra_args))}")

    # Check for missing required arguments
    missing_required = set()
    for param_name, param in self.signature.parameters.items():
      if param.default == inspect.Parameter.empty and param_name not in args:
        missing_required.add(param_name)

    if missing_required:
      raise MalformedArgumentsError(
        self.name, None, f"Missing required arguments: {', '.join(sorted(missing_required))}"
      )

    return self._coerce_argument_types(args)

  def _coerce_argument_types(self, args: dict) -> dict:
    """Coerce argument types to match function type hints.

    Arguments reach tools as strings, so "42" becomes 42 for an ``int`` parameter.
    """
    coerced_args = {}
    for arg_name, arg_value in args.items():
      if arg_name not in self.type_hints:
        coerced_args[arg_name] = arg_value
        continue

      expected_type = self.type_hints[arg_name]

      # Optional[X] is Union[X, None]: coerce to X
      origin = get_origin(expected_type)
      if origin is Union or (
        hasattr(expected_type, "__class__") and expected_type.__class__.__name__ == "UnionType"
      ):
        type_args = get_args(expected_type)
        if type_args:
          expected_type = next((t for t in type_args if t is not type(None)), expected_type)

      try:
        coerced_value = _coerce_value(arg_value, expected_type)
      except (ValueError, TypeError) as e:
        type_name = getattr(expected_type, "__name__", str(expected_type))
        self.logger.debug(f"Failed to coerce argument '{arg_name}' to {type_name}: {e}")
        raise MalformedArgumentsError(
          self.name,
          None,
          f"Argument '{arg_name}' has invalid type: expected {type_name}, "
          f"got {type(arg_value).__name__} (value: {arg_value!r})",
        )
      coerced_args[arg_name] = coerced_value

    return coerced_args


def parse_arguments(name: str, json_argument: Optional[str]) -> dict:
  """Parse the JSON arguments of a call into a dict."""

  if json_argument is None or json_argument.strip() == "":
    return {}

  if len(json_argument) > MAX_JSON_SIZE:
    raise MalformedArgumentsError(
      name, None, f"JSON argument too large: {len(json_argument):,} bytes (max: {MAX_JSON_SIZE:,})"
    )

  try:
    args = json.loads(json_argument)
  except json.JSONDecodeError as e:
    raise MalformedArgumentsError(name, json_argument, f"Invalid JSON format: {e}")

  if not isinstance(args, dict):
    raise MalformedArgumentsError(name, json_argument, f"JSON argument must be an object, got {type(args).__name__}")

  return args


def _coerce_value(value, expected_type):
  if value is None:
    return None

  # For generic types like List[int], Dict[str, Any], check against the origin
  origin = get_origin(expected_type)
  if origin is not None:
    if origin in (list, dict) and isinstance(value, str):
      parsed = json.loads(value)
      if isinstance(parsed, origin):
        return parsed
      raise TypeError(f"Cannot coerce {value!r} to {origin.__name__}")
    try:
      if isinstance(value, origin):
        return value
    except TypeError:
      pass
    return value

  try:
    if isinstance(value, expected_type) and not (expected_type is int and isinstance(value, bool)):
      return value
  except TypeError:
    return value

  if expected_type is int:
    if isinstance(value, (str, float, bool)):
      return int(value)
    raise TypeError(f"Cannot coerce {type(value).__name__} to int")

  elif expected_type is float:
    if isinstance(value, (str, int)):
      return float(value)
    raise TypeError(f"Cannot coerce {type(value).__name__} to float")

  elif expected_type is bool:
    if isinstance(value, str):
      lower_value = value.lower()
      if lower_value in ("true", "1", "yes", "on"):
        return True
      elif lower_value in ("false", "0", "no", "off"):
        return False
      raise ValueError(f"Cannot coerce string '{value}' to bool")
    elif isinstance(value, (int, float)):
      return bool(value)
    raise TypeError(f"Cannot coerce {type(value).__name__} to bool")

  elif expected_type is str:
    return str(value)

  elif expected_type in (list, List, dict, Dict) and isinstance(value, str):
    target = list if expected_type in (list, List) else dict
    parsed = json.loads(value)
    if isinstance(parsed, target):
      return parsed
    raise TypeError(f"Cannot coerce {value!r} to {target.__name__}")

  return value


def _type_hints(f) -> dict:
  try:
    return get_type_hints(f)
  except Exception:
    return {}


def wrap(f) -> callable:
  @wraps(f)
  async def wrapper(**kwargs):
    r = f(**kwargs)
    if inspect.iscoroutine(r):
      return await r
    return r

  return wrapper


def function_spec(f, name: Optional[str] = None, description: Optional[str] = None) -> (str, dict):
  f_name = name or f.__name__
  if description is None:
    description = inspect.cleandoc(f.__doc__) if f.__doc__ else f"Function {f_name}"
  f_parameters = parameters_spec(f)
  return f_name, {
    "type": "function",
    "function": {"name": f_name, "description": description, "parameters": f_parameters},
  }


def parameters_spec(f):
  f_parameters = {"type": "object", "properties": {}, "required": []}

  signature = inspect.signature(f)
  type_hints = _type_hints(f)

  p_info_from_docstring = parameter_info_from_docstring(f.__doc__)
  for p_name, p in signature.parameters.items():
    # Prefer the type from the docstring if available.
    p_type = type_hints.get(p_name)
    p_type = p_type.__name__ if isinstance(p_type, type) else str(p_type)
    doc_type, p_description = p_info_from_docstring.get(p_name, (None, None))
    p_type = to_json_schema_type(doc_type or p_type)

    f_parameters["properties"][p_name] = {"type": p_type, "description": p_description or f"parameter {p_name}"}

    # Only add to required list if parameter has no default value
    if p.default == inspect.Parameter.empty:
      f_parameters["required"].append(p_name)

  return f_parameters


def to_json_schema_type(p_type):
  return {
    "bool": "boolean",
    "int": "integer",
    "float": "number",
    "str": "string",
    "list": "array",
    "dict": "object",
  }.get(p_type, "string")


def parameter_info_from_docstring(docstring):
  p_info = {}
  if not docstring:
    return p_info

  parsed = parse(docstring)
  for parameter in parsed.params:
    p_info[parameter.arg_name] = (parameter.type_name, parameter.description)

  return p_info
