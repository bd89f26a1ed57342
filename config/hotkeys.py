from dataclasses import dataclass, field
from typing import List, Union


@dataclass
class HotkeyDefinition:
    """One configured action and the key sequences that trigger it."""
    action_name: str
    sequences: List[str] = field(default_factory=list)
    description: str = ""

    @classmethod
    def from_config(cls, action_name: str, config: Union[str, list, dict, None]) -> 'HotkeyDefinition':
        """Accepts ``"Right"``, ``["Right", "D"]`` or
        ``{"sequence": "Right", "extra_sequences": [...], "description": ...}``.

        Raises ValueError for anything else; ``None`` disables the action.
        """
        if config is None:
            return cls(action_name=action_name)
        if isinstance(config, str):
            return cls(action_name=action_name, sequences=[config])
        if isinstance(config, list):
            return cls(action_name=action_name, sequences=_as_sequences(action_name, config))
        if isinstance(config, dict):
            primary = config.get("sequence")
            sequences = [] if primary is None else _as_sequences(action_name, primary)
            sequences.extend(_as_sequences(action_name, config.get("extra_sequences", [])))
            return cls(
                action_name=action_name,
                sequences=sequences,
                description=str(config.get("description", "")),
            )
        raise ValueError(f"Hotkey '{action_name}' must be a string, list or mapping, got {type(config).__name__}")


def _as_sequences(action_name: str, value) -> List[str]:
    values = [value] if isinstance(value, str) else value
    if not isinstance(values, list) or not all(isinstance(v, str) and v for v in values):
        raise ValueError(f"Hotkey '{action_name}' has an invalid key sequence: {value!r}")
    return list(values)
