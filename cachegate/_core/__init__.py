from cachegate._core._headers import (
    CacheControl as CacheControl,
    Headers as Headers,
    find_malformed_header as find_malformed_header,
    parse_cache_control as parse_cache_control,
    parse_entity_tag as parse_entity_tag,
)
from cachegate._core._response import ResponseDirectives as ResponseDirectives
from cachegate._core._spec import (
    PRECONDITION_RULES as PRECONDITION_RULES,
    CacheValidator as CacheValidator,
    Decision as Decision,
    ValidatorOptions as ValidatorOptions,
)
from cachegate._core.models import (
    RequestConditionals as RequestConditionals,
    Resource as Resource,
    ResourceDescriptor as ResourceDescriptor,
)

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
)
