import logging
from pathlib import Path

import yaml
from transitions import Machine, MachineError

from booth.errors import InvalidTransition


class PipelineFSM:
    """
    Finite State Machine for the camera preview lifecycle
    (idle -> starting -> running -> stopped).
    Loads its structure from states.yaml for easy modification.
    """

    def __init__(self, config_path=None, callbacks=None):
        """
        :param config_path: Optional path to the YAML FSM definition.
        :param callbacks: Optional dict of callbacks for state entry/exit actions.
                          Example: {"on_enter_running": some_function}
        """
        self.log = logging.getLogger("PipelineFSM")
        self.config_path = config_path or Path(__file__).parent / "states.yaml"
        self.callbacks = callbacks or {}

        with open(self.config_path, "r") as f:
            fsm_config = yaml.safe_load(f)

        state_names = fsm_config.get("states", [])
        transitions = fsm_config.get("transitions", [])
        initial = fsm_config.get("initial", "idle")

        # Validate callbacks before they are bound to states
        for name, func in self.callbacks.items():
            if not callable(func):
                raise ValueError(f"Callback '{name}' must be callable, got {type(func)}")
            if not (name.startswith("on_enter_") or name.startswith("on_exit_")):
                raise ValueError(f"Callback name '{name}' should look like 'on_enter_<state>' or 'on_exit_<state>'")
            state = name.split("_", 2)[2]
            if state not in state_names:
                raise ValueError(f"Callback '{name}' refers to unknown state '{state}'")

        states = []
        for state in state_names:
            definition = {"name": state}
            for hook in ("on_enter", "on_exit"):
                func = self.callbacks.get(f"{hook}_{state}")
                if func is not None:
                    definition[hook] = [func]
            states.append(definition)

        self.machine = Machine(
            model=self,
            states=states,
            transitions=transitions,
            initial=initial,
            auto_transitions=False,
        )

    def fire(self, trigger: str):
        """Fire a trigger by name, translating machine errors."""
        try:
            return self.trigger(trigger)
        except MachineError as e:
            raise InvalidTransition(f"Cannot '{trigger}' from state '{self.state}': {e.value}") from e

    def can(self, trigger: str) -> bool:
        return trigger in self.machine.get_triggers(self.state)

    # Optional debugging helper
    def debug_state(self):
        self.log.debug(f"[FSM] Current state -> {self.state}")
