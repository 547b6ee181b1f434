"""
Reference evaluation for property values.

A raw value may embed references to other properties:

    ${name}            value of property "name"
    ${name:fallback}   value of "name", or the fallback text if it does not exist
    $$                 a literal "$"

Fallback text may itself contain references. A "$" that does not start a
well-formed reference is kept as literal text, as is an unterminated "${".

Evaluation is a recursive descent over the referenced values. The resolution
path is scoped to one evaluate() call: a property may be referenced from many
places, but never from inside its own expansion.
"""

from dataclasses import dataclass
import logging
from typing import Callable, Iterator, List, Optional, Set, Tuple

from managedprops.config import MissingReferencePolicy, get_framework_config
from managedprops.exceptions import (
    CyclicReferenceError,
    ReferenceDepthError,
    UnresolvedReferenceError,
)

logger = logging.getLogger(__name__)

Retriever = Callable[[str], Optional[str]]

REFERENCE_MARKER = '$'
REFERENCE_OPEN = '{'
REFERENCE_CLOSE = '}'
DEFAULT_SEPARATOR = ':'


@dataclass(frozen=True)
class Reference:
    """A reference found in a raw value.

    start/end are offsets into the raw value (end exclusive), so
    raw[start:end] is the full placeholder text.
    """
    start: int
    end: int
    name: str
    default: Optional[str] = None


def _scan_reference(raw: str, start: int) -> Optional[Reference]:
    """Parse the reference whose "${" begins at start, or None if malformed."""
    length = len(raw)
    position = start + 2
    name_end: Optional[int] = None
    depth = 0

    while position < length:
        char = raw[position]

        if name_end is None:
            if char == REFERENCE_MARKER:
                return None
            if char == REFERENCE_CLOSE:
                break
            if char == DEFAULT_SEPARATOR:
                name_end = position
            position += 1
            continue

        # Inside fallback text: skip escapes and balance nested references
        if char == REFERENCE_MARKER and position + 1 < length:
            following = raw[position + 1]
            if following == REFERENCE_MARKER:
                position += 2
                continue
            if following == REFERENCE_OPEN:
                depth += 1
                position += 2
                continue
        if char == REFERENCE_CLOSE:
            if depth == 0:
                break
            depth -= 1
        position += 1
    else:
        return None

    end = position + 1
    name = raw[start + 2:name_end if name_end is not None else position].strip()
    if not name:
        return None

    default = raw[name_end + 1:position] if name_end is not None else None
    return Reference(start=start, end=end, name=name, default=default)


def _tokenize(raw: str) -> Iterator[object]:
    """Yield literal text segments (str) and Reference tokens in order."""
    length = len(raw)
    literal: List[str] = []
    position = 0

    while position < length:
        char = raw[position]
        if char == REFERENCE_MARKER and position + 1 < length:
            following = raw[position + 1]
            if following == REFERENCE_MARKER:
                literal.append(REFERENCE_MARKER)
                position += 2
                continue
            if following == REFERENCE_OPEN:
                reference = _scan_reference(raw, position)
                if reference is not None:
                    if literal:
                        yield ''.join(literal)
                        literal = []
                    yield reference
                    position = reference.end
                    continue
        literal.append(char)
        position += 1

    if literal:
        yield ''.join(literal)


class ReferenceEvaluator:
    """
    Expands references in raw property values.

    The evaluator holds no property data. Every call receives a retriever,
    ``retrieve(name) -> raw value or None``, typically backed by
    PropertyStore.get.

    Example:
        >>> values = {"a": "prefix-${b}", "b": "${c}-mid", "c": "value"}
        >>> ReferenceEvaluator().evaluate(values["a"], values.get)
        'prefix-value-mid'
    """

    def __init__(
        self,
        max_depth: Optional[int] = None,
        missing_policy: Optional[MissingReferencePolicy] = None,
    ):
        """
        Args:
            max_depth: Longest resolution path to follow. None uses the framework config.
            missing_policy: Expansion of unresolved references without inline
                            default. None uses the framework config.
        """
        config = get_framework_config()
        self.max_depth = config.max_reference_depth if max_depth is None else max_depth
        self.missing_policy = config.missing_reference_policy if missing_policy is None else missing_policy

    # ========== PARSING ==========

    @staticmethod
    def parse(raw: Optional[str]) -> List[Reference]:
        """All references in raw, left to right. Fallback texts are not descended into."""
        if not raw:
            return []
        return [token for token in _tokenize(raw) if isinstance(token, Reference)]

    def reference_at(self, raw: Optional[str], position: int, retrieve: Optional[Retriever] = None) -> Optional[Reference]:
        """The reference beginning exactly at position in raw, if any.

        retrieve is accepted for interface symmetry with evaluate(); the lookup
        is purely syntactic.
        """
        if not raw or position < 0 or position >= len(raw):
            return None

        for reference in self.parse(raw):
            if reference.start == position:
                return reference
            if reference.start > position:
                break
        return None

    # ========== EVALUATION ==========

    def evaluate(self, raw: Optional[str], retrieve: Retriever, name: Optional[str] = None) -> Optional[str]:
        """Expand every reference in raw.

        Args:
            raw: Raw value; None is returned unchanged.
            retrieve: Lookup of raw values by property name.
            name: Property that raw belongs to, if known. Seeds the resolution
                  path so a reference back to it is reported as a cycle.

        Raises:
            CyclicReferenceError: a property is reached from its own expansion.
            ReferenceDepthError: the resolution path exceeds max_depth.
            UnresolvedReferenceError: missing reference under the FAIL policy.
        """
        if raw is None:
            return None

        path: Tuple[str, ...] = (name,) if name is not None else ()
        return self._expand(raw, retrieve, path)

    def _expand(self, raw: str, retrieve: Retriever, path: Tuple[str, ...]) -> str:
        parts: List[str] = []
        for token in _tokenize(raw):
            if isinstance(token, Reference):
                parts.append(self._resolve(token, raw, retrieve, path))
            else:
                parts.append(token)
        return ''.join(parts)

    def _resolve(self, reference: Reference, raw: str, retrieve: Retriever, path: Tuple[str, ...]) -> str:
        name = reference.name
        if name in path:
            raise CyclicReferenceError(path[path.index(name):] + (name,))

        value = retrieve(name)
        if value is None:
            if reference.default is not None:
                return self._expand(reference.default, retrieve, path)
            return self._missing(reference, raw)

        next_path = path + (name,)
        if len(next_path) > self.max_depth:
            raise ReferenceDepthError(self.max_depth, next_path)

        return self._expand(value, retrieve, next_path)

    def _missing(self, reference: Reference, raw: str) -> str:
        if self.missing_policy is MissingReferencePolicy.FAIL:
            raise UnresolvedReferenceError(reference.name)

        logger.debug(f"Unresolved reference to '{reference.name}' ({self.missing_policy.value})")
        if self.missing_policy is MissingReferencePolicy.EMPTY:
            return ''
        return raw[reference.start:reference.end]

    # ========== DEPENDENCIES ==========

    def _referenced_names(self, raw: Optional[str]) -> Iterator[str]:
        for reference in self.parse(raw):
            yield reference.name
            if reference.default:
                yield from self._referenced_names(reference.default)

    def references(self, raw: Optional[str], retrieve: Retriever) -> Set[str]:
        """Every property name reachable from raw, directly or transitively."""
        seen: Set[str] = set()
        pending = list(self._referenced_names(raw))

        while pending:
            name = pending.pop()
            if name in seen:
                continue
            seen.add(name)
            pending.extend(self._referenced_names(retrieve(name)))

        return seen

    def is_referencing(self, raw: Optional[str], target: str, retrieve: Retriever) -> bool:
        """Whether raw depends on target, directly or transitively.

        Walks referenced names without substituting values; cycles terminate
        through the visited set instead of raising.
        """
        seen: Set[str] = set()
        pending = list(self._referenced_names(raw))

        while pending:
            name = pending.pop()
            if name == target:
                return True
            if name in seen:
                continue
            seen.add(name)
            pending.extend(self._referenced_names(retrieve(name)))

        return False
