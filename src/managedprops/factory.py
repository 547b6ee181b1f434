"""
Builders for PropertiesManager.

Defaults come either from a PropertyDescriptor enum (each member's declared
value) or from a separate defaults file.
"""

from concurrent.futures import Executor
from enum import Enum
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Type, TypeVar, Union

from managedprops.codec import StoreCodec, codec_for_path
from managedprops.config import FrameworkConfig
from managedprops.manager import PropertiesManager
from managedprops.reference_evaluator import ReferenceEvaluator
from managedprops.translator import EnumTranslator, Translator, default_properties

logger = logging.getLogger(__name__)

K = TypeVar('K', bound=Enum)

PathLike = Union[str, 'os.PathLike[str]']


def load_defaults(path: PathLike, codec: Optional[StoreCodec] = None) -> Dict[str, str]:
    """Decode a defaults file.

    Unlike the managed file, a defaults file must exist.

    Raises:
        FileNotFoundError: if path is not a file.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    codec = codec or codec_for_path(path)
    return codec.read(path)


def new_manager(
    path: PathLike,
    descriptor_type: Type[K],
    translator: Optional[Translator[K]] = None,
    evaluator: Optional[ReferenceEvaluator] = None,
    executor: Optional[Executor] = None,
    defaults_path: Optional[PathLike] = None,
    codec: Optional[StoreCodec] = None,
    config: Optional[FrameworkConfig] = None,
) -> PropertiesManager[K]:
    """
    Create a manager for the file at path with keys of descriptor_type.

    Args:
        path: Managed property file (need not exist yet).
        descriptor_type: Key enum. Without defaults_path it must be a
                         PropertyDescriptor so its members supply the defaults.
        translator: Key/name mapping; EnumTranslator(descriptor_type) by default.
        evaluator: Reference evaluator; built from the framework config by default.
        executor: Executor for file I/O; the manager owns one when omitted.
        defaults_path: File holding the defaults, decoded by its suffix.
        codec: Codec for the managed file; chosen by suffix when omitted.
        config: Per-manager framework config override.

    Example:
        >>> class Key(PropertyDescriptor):
        ...     SERVER_HOST = "localhost"
        ...     SERVER_PORT = "8080"
        >>> manager = new_manager("server.properties", Key)
    """
    translator = translator or EnumTranslator(descriptor_type)

    if defaults_path is not None:
        defaults = load_defaults(defaults_path)
    else:
        defaults = default_properties(descriptor_type, translator)

    logger.debug(f"Creating manager for {path} with {len(defaults)} default(s) from "
                 f"{defaults_path or descriptor_type.__name__}")

    return PropertiesManager(
        path,
        defaults,
        translator,
        evaluator=evaluator,
        codec=codec or codec_for_path(path),
        executor=executor,
        config=config,
    )
