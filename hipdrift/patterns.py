"""
hipdrift — Pattern Assembly
===========================
Multi-slot trial patterns built from pool vectors and drift-chain elements.

A pattern concatenates fixed-size slots in layout order.  It offers two
views of the same data:

* **target view** — every slot filled (cue + target + context); what the
  network should reconstruct, and what it studies during training.
* **input view**  — target slots blanked; what it is cued with at test.

Components that are on in the target view but off in the input view are the
ones the network has to complete from memory.
"""

from dataclasses import dataclass

import numpy as np

from .errors import ConfigurationError
from .utils import _readonly

ROLES = ("cue", "target", "context")


@dataclass(frozen=True)
class SlotSpec:
    name: str
    role: str
    size: int

    def __post_init__(self):
        if self.role not in ROLES:
            raise ConfigurationError(f"slot {self.name!r}: unknown role {self.role!r}")
        if self.size < 1:
            raise ConfigurationError(f"slot {self.name!r}: size must be >= 1")


class PatternLayout:
    """Ordered slots and their offsets within the flat pattern vector."""

    def __init__(self, slots):
        self.slots = tuple(slots)
        names = [s.name for s in self.slots]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"duplicate slot names in layout: {names}")
        self._slices = {}
        start = 0
        for s in self.slots:
            self._slices[s.name] = slice(start, start + s.size)
            start += s.size
        self.size = start

    @classmethod
    def standard(cls, slot_size, n_context_slots):
        """Cue ``A``, target ``B`` and ``ctx0..ctxK-1`` context slots."""
        slots = [SlotSpec("A", "cue", slot_size), SlotSpec("B", "target", slot_size)]
        slots += [SlotSpec(f"ctx{k}", "context", slot_size) for k in range(n_context_slots)]
        return cls(slots)

    def __eq__(self, other):
        return isinstance(other, PatternLayout) and self.slots == other.slots

    def __hash__(self):
        return hash(self.slots)

    def slot(self, name):
        try:
            return self._slices[name]
        except KeyError:
            raise ConfigurationError(f"layout has no slot {name!r}") from None

    def names(self, role=None):
        return [s.name for s in self.slots if role is None or s.role == role]

    def role_mask(self, role):
        """Boolean mask over the flat vector selecting every slot of *role*."""
        mask = np.zeros(self.size, dtype=bool)
        for name in self.names(role):
            mask[self._slices[name]] = True
        return mask


@dataclass(frozen=True, eq=False)
class Pattern:
    """One trial's stimulus; read-only once built."""

    name: str
    layout: PatternLayout
    target: np.ndarray

    def target_view(self):
        return self.target

    def input_view(self, blank_context=False):
        """Target slots blanked; context slots too when *blank_context*."""
        v = np.array(self.target)
        v[self.layout.role_mask("target")] = 0.0
        if blank_context:
            v[self.layout.role_mask("context")] = 0.0
        return v

    def completion_mask(self):
        """Components the network must supply itself: on in target, off in input."""
        return (self.target > 0) & (self.input_view() <= 0)

    def slot_value(self, name):
        return self.target[self.layout.slot(name)]


class PatternSet:
    """Ordered, named list of patterns (e.g. ``TrainAB``, ``TestAB_ri4``)."""

    def __init__(self, name, patterns):
        self.name = name
        self.patterns = tuple(patterns)

    def __len__(self):
        return len(self.patterns)

    def __iter__(self):
        return iter(self.patterns)

    def __getitem__(self, idx):
        return self.patterns[idx]

    def __repr__(self):
        return f"PatternSet({self.name!r}, n={len(self)})"

    def names(self):
        return [p.name for p in self.patterns]


class PatternAssembler:
    """
    Fills a layout from pool and drift-chain vectors.

    Parameters
    ----------
    layout : PatternLayout
    """

    def __init__(self, layout):
        for role in ("cue", "target"):
            if len(layout.names(role)) != 1:
                raise ConfigurationError(f"assembler needs exactly one {role} slot")
        self.layout = layout

    @classmethod
    def from_config(cls, config):
        return cls(PatternLayout.standard(config.slot_size, config.n_context_slots))

    def assemble(self, name, cue, target, contexts=()):
        """
        Build one pattern.

        Parameters
        ----------
        name : str
        cue, target : (slot_size,) arrays
        contexts : sequence of (slot_size,) arrays
            One per context slot, in slot order.
        """
        contexts = tuple(contexts)
        ctx_names = self.layout.names("context")
        if len(contexts) != len(ctx_names):
            raise ConfigurationError(
                f"pattern {name!r}: {len(contexts)} context vectors for "
                f"{len(ctx_names)} context slots")
        values = dict(zip(ctx_names, contexts))
        values[self.layout.names("cue")[0]] = cue
        values[self.layout.names("target")[0]] = target

        flat = np.zeros(self.layout.size)
        for spec in self.layout.slots:
            v = np.asarray(values[spec.name], dtype=float)
            if v.shape != (spec.size,):
                raise ConfigurationError(
                    f"pattern {name!r}: slot {spec.name!r} expects ({spec.size},), "
                    f"got {v.shape}")
            flat[self.layout.slot(spec.name)] = v
        return Pattern(name=name, layout=self.layout, target=_readonly(flat))

    def build_set(self, name, cues, targets, contexts, item_prefix=None):
        """
        Assemble a PatternSet from parallel sequences.

        ``contexts[i]`` is the tuple of context-slot vectors for item ``i``.
        Items are named ``<prefix>_<i>`` (prefix defaults to the set name).
        """
        if not len(cues) == len(targets) == len(contexts):
            raise ConfigurationError(
                f"set {name!r}: cues/targets/contexts lengths differ "
                f"({len(cues)}, {len(targets)}, {len(contexts)})")
        prefix = item_prefix or name
        patterns = [self.assemble(f"{prefix}_{i}", c, t, ctx)
                    for i, (c, t, ctx) in enumerate(zip(cues, targets, contexts))]
        return PatternSet(name, patterns)


def contexts_at(chains, position):
    """Context-slot vectors for a timeline position, one per channel."""
    return tuple(chain[position] for chain in chains)
