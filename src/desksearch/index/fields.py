"""Names of the fields stored for every indexed document."""

UNIQUE_ID = "uniqueId"
LOCATION_ID = "locationId"
CONTENT_HASH = "contentHash"
FILE_SIZE = "fileSize"
LAST_MODIFIED = "lastModified"
LANGUAGE = "language"
CONTENT = "content"

ATTRIBUTE_PREFIX = "attr_"
EXTENSION = "extension"


def attribute(name: str) -> str:
    return ATTRIBUTE_PREFIX + name
