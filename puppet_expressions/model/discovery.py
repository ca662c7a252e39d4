"""Descriptor Discovery - Locate and read a model's CDI3 descriptor.

Given a model file path, candidates are tried in order:
1. <stem>.cdi3.json
2. <stem>.cdi3
3. model.cdi3.json
4. parameters.cdi3.json
5. any *.cdi3.json in the model directory
6. any *.cdi3 in the model directory

The first existing file wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from puppet_expressions.exceptions import InvalidDescriptorError
from puppet_expressions.model.catalogue import ParameterCatalogue
from puppet_expressions.model.descriptor import build_catalogue, load_descriptor
from puppet_expressions.observability.logging import ModelLogger


def _model_stem(model_path: Path) -> str:
    # "hiyori.model3.json" -> "hiyori"
    name = model_path.name
    for suffix in (".model3.json", ".model.json", ".cdi3.json", ".cdi3"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return model_path.stem


def descriptor_candidates(model_path: str | Path) -> list[Path]:
    """List the fixed-name descriptor candidates for a model, in lookup order."""
    path = Path(model_path)
    directory = path.parent
    stem = _model_stem(path)
    return [
        directory / f"{stem}.cdi3.json",
        directory / f"{stem}.cdi3",
        directory / "model.cdi3.json",
        directory / "parameters.cdi3.json",
    ]


def find_descriptor_for_model(model_path: str | Path) -> Path | None:
    """Find the descriptor file for a model.

    Args:
        model_path: Path to the model file (or anything in its directory)

    Returns:
        Path of the first existing candidate, or None
    """
    path = Path(model_path)
    logger = ModelLogger()

    for candidate in descriptor_candidates(path):
        if candidate.is_file():
            logger.descriptor_found(str(path), str(candidate))
            return candidate

    directory = path.parent
    if directory.is_dir():
        for pattern in ("*.cdi3.json", "*.cdi3"):
            matches = sorted(p for p in directory.glob(pattern) if p.is_file())
            if matches:
                logger.descriptor_found(str(path), str(matches[0]))
                return matches[0]

    logger.descriptor_found(str(path), None)
    return None


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise InvalidDescriptorError(f"cannot read file: {e.strerror}", str(path)) from e
    except UnicodeDecodeError as e:
        raise InvalidDescriptorError("file is not valid UTF-8", str(path)) from e


def read_descriptor(
    path: str | Path,
    model_name: str | None = None,
) -> ParameterCatalogue:
    """Read a descriptor file and build its catalogue.

    Raises:
        InvalidDescriptorError: If the file is unreadable or not a descriptor
    """
    path = Path(path)
    text = _read_text(path)

    try:
        descriptor = load_descriptor(text)
    except InvalidDescriptorError as e:
        raise InvalidDescriptorError(e.reason, str(path)) from e

    return build_catalogue(descriptor, model_name=model_name)


@dataclass(frozen=True)
class DescriptorInfo:
    """Summary of a descriptor file."""

    name: str
    version: str
    parameter_count: int
    file_size: int


def descriptor_info(path: str | Path) -> DescriptorInfo:
    """Summarize a descriptor file without building a catalogue.

    Raises:
        InvalidDescriptorError: If the file is unreadable or not a descriptor
    """
    path = Path(path)
    try:
        size = path.stat().st_size
    except OSError as e:
        raise InvalidDescriptorError(f"cannot read file: {e.strerror}", str(path)) from e
    text = _read_text(path)

    descriptor = load_descriptor(text)
    return DescriptorInfo(
        name=descriptor.Name or path.name,
        version=str(descriptor.Version) if descriptor.Version is not None else "Unknown",
        parameter_count=len(descriptor.Parameters),
        file_size=size,
    )
