from .group_chat import GroupChat
from .registry import ChannelRegistry, key_hash, keys_for
from .selection import FunctionSelectionStrategy, SelectionStrategy, SequentialSelectionStrategy
from .termination import (
  AggregatorTerminationStrategy,
  DefaultTerminationStrategy,
  FunctionTerminationStrategy,
  RegexTerminationStrategy,
  TerminationStrategy,
)

__all__ = [
  "GroupChat",
  "ChannelRegistry",
  "key_hash",
  "keys_for",
  "SelectionStrategy",
  "SequentialSelectionStrategy",
  "FunctionSelectionStrategy",
  "TerminationStrategy",
  "DefaultTerminationStrategy",
  "RegexTerminationStrategy",
  "FunctionTerminationStrategy",
  "AggregatorTerminationStrategy",
]
