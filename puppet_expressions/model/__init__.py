"""Model layer: parameter catalogue, descriptor parsing and classification."""

from puppet_expressions.model.catalogue import (
    ModelParameter,
    ParameterCatalogue,
    humanize_parameter_id,
)
from puppet_expressions.model.classifier import (
    ClassificationResult,
    categorize,
    classify,
    is_expression_parameter,
    search,
    statistics,
)
from puppet_expressions.model.descriptor import (
    DescriptorParameter,
    ModelDescriptor,
    build_catalogue,
    load_descriptor,
    parse_descriptor,
)
from puppet_expressions.model.discovery import (
    DescriptorInfo,
    descriptor_info,
    find_descriptor_for_model,
    read_descriptor,
)

__all__ = [
    "ModelParameter",
    "ParameterCatalogue",
    "humanize_parameter_id",
    "ClassificationResult",
    "categorize",
    "classify",
    "is_expression_parameter",
    "search",
    "statistics",
    "DescriptorParameter",
    "ModelDescriptor",
    "build_catalogue",
    "load_descriptor",
    "parse_descriptor",
    "DescriptorInfo",
    "descriptor_info",
    "find_descriptor_for_model",
    "read_descriptor",
]
