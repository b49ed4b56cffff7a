"""Shape extracted content into index documents."""

from __future__ import annotations

from desksearch.index.dates import metadata_attributes
from desksearch.models import Content, IndexDocument
from desksearch.utils.files import content_digest


def build_document(location_id: str, content: Content) -> IndexDocument:
    return IndexDocument(
        unique_id=content.file_name,
        location_id=location_id,
        content_hash=content_digest(content.text),
        file_size=content.file_size,
        last_modified=content.last_modified,
        language=content.language.name,
        content=content.text,
        attributes=metadata_attributes(content.metadata),
    )
