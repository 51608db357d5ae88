from cachegate._core import (
    PRECONDITION_RULES as PRECONDITION_RULES,
    CacheControl as CacheControl,
    CacheValidator as CacheValidator,
    Decision as Decision,
    Headers as Headers,
    RequestConditionals as RequestConditionals,
    Resource as Resource,
    ResourceDescriptor as ResourceDescriptor,
    ResponseDirectives as ResponseDirectives,
    ValidatorOptions as ValidatorOptions,
    find_malformed_header as find_malformed_header,
    parse_cache_control as parse_cache_control,
    parse_entity_tag as parse_entity_tag,
)
from cachegate._exceptions import CacheGateError, HeaderValidationError
from cachegate._utils import BaseClock, Clock

__all__ = (
    ## Validation
    "CacheValidator",
    "Decision",
    "ValidatorOptions",
    "PRECONDITION_RULES",
    ## Models
    "RequestConditionals",
    "Resource",
    "ResourceDescriptor",
    "ResponseDirectives",
    ## Headers
    "Headers",
    "CacheControl",
    "parse_cache_control",
    "parse_entity_tag",
    "find_malformed_header",
    ## Clocks
    "BaseClock",
    "Clock",
    ## Exceptions
    "CacheGateError",
    "HeaderValidationError",
)
