from enum import StrEnum


class StingEnum(StrEnum):
    """String enum which is rendered (and stored) as its value"""


class ReleaseCategory(StingEnum):
    FEATURE = "feature"
    BUGFIX = "bugfix"
    ENHANCEMENT = "enhancement"
    CUSTOM = "custom"


class MediaType(StingEnum):
    IMAGE = "image"
    VIDEO = "video"


class SyncStrategy(StingEnum):
    REPLACE = "replace"
    DIFF = "diff"


PLACEHOLDER_ID_PREFIX = "new-"
BUILTIN_CATEGORIES = frozenset(
    (ReleaseCategory.FEATURE, ReleaseCategory.BUGFIX, ReleaseCategory.ENHANCEMENT)
)
