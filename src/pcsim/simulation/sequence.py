"""Decision models of a simulation and the flow of state between them."""

from typing import Dict, Iterator, List, Optional, Tuple

from ..decision_model import DecisionModel
from ..exceptions import ConfigurationError
from ..initial_conditions import InterProblemChronology


class SimulationModels:
    """Ordered, uniquely named decision models."""

    def __init__(self, decision_models: List[DecisionModel]):
        if not decision_models:
            raise ConfigurationError("A simulation needs at least one decision model")
        names = [m.name for m in decision_models]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Decision model names must be unique, repeated: {duplicates}")
        self._models: Dict[str, DecisionModel] = {m.name: m for m in decision_models}

    def __iter__(self) -> Iterator[DecisionModel]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)

    def __getitem__(self, name: str) -> DecisionModel:
        try:
            return self._models[name]
        except KeyError:
            raise ConfigurationError(f"No decision model named '{name}'") from None

    @property
    def names(self) -> List[str]:
        return list(self._models)


class SimulationSequence:
    """Execution order plus the chronology that carries state forward.

    Each model feeds its own next window: the edge ``(name, name)`` runs
    from step i-1 to step i. Within one step models run in the order given.
    """

    def __init__(self, models: SimulationModels,
                 ini_cond_chronology: Optional[InterProblemChronology] = None):
        self.models = models
        self.chronology = ini_cond_chronology or InterProblemChronology()
        self.feedforward: List[Tuple[str, str]] = [(name, name) for name in models.names]
        self.validate()

    @property
    def execution_order(self) -> List[str]:
        return self.models.names

    def validate(self) -> None:
        """Exactly one incoming edge per model, all across a step boundary."""
        targets = [target for _, target in self.feedforward]
        names = set(self.models.names)
        if sorted(targets) != sorted(names):
            raise ConfigurationError(
                f"Every model needs exactly one feed-forward source, got edges {self.feedforward}"
            )
        for source, target in self.feedforward:
            if source not in names:
                raise ConfigurationError(f"Feed-forward source '{source}' is not a model")
            # Edges join step i-1 to step i, so within a step the graph is empty.
            if source != target:
                raise ConfigurationError(
                    f"Feed-forward edge {source} -> {target} would link models inside one step"
                )

    def source_of(self, model_name: str) -> str:
        for source, target in self.feedforward:
            if target == model_name:
                return source
        raise ConfigurationError(f"No feed-forward edge into '{model_name}'")
