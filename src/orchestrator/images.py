"""Generated image handling.

Inline image payloads are written to uniquely named temporary files;
remote images are passed through by URI. Either way the caller gets a
``GeneratedImage`` handle that owns the local file, if there is one.
"""

import binascii
import tempfile
from pathlib import Path
from typing import Optional, Union

from shared.logging import get_logger
from shared.models import Candidate, FileDataPart, InlineDataPart

logger = get_logger(__name__)


class GeneratedImage:
    """
    Handle to a generated image.
    
    ``location`` is a local path or a remote URI, and is empty when the
    gateway returned no image. When ``path`` is set the handle owns that
    file: ``release()`` (or leaving a ``with`` block) deletes it.
    Remote URIs may expire, often within an hour.
    """
    
    def __init__(
        self,
        location: str = "",
        path: Optional[Path] = None,
        mime_type: Optional[str] = None
    ) -> None:
        self.location = location
        self.path = path
        self.mime_type = mime_type
    
    @property
    def is_local(self) -> bool:
        return self.path is not None
    
    def release(self) -> None:
        """Delete the owned file, if any. Safe to call more than once."""
        if self.path is not None:
            self.path.unlink(missing_ok=True)
            logger.debug("Generated image released", path=str(self.path))
            self.path = None
    
    def __bool__(self) -> bool:
        return bool(self.location)
    
    def __str__(self) -> str:
        return self.location
    
    def __repr__(self) -> str:
        return f"GeneratedImage(location={self.location!r}, mime_type={self.mime_type!r})"
    
    def __enter__(self) -> "GeneratedImage":
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


def extension_for(mime_type: str) -> str:
    """Derive a file extension from a MIME subtype, e.g. image/svg+xml -> svg."""
    subtype = mime_type.split(";")[0].partition("/")[2].strip().lower()
    return subtype.split("+")[0] or "bin"


def save_inline_image(
    part: InlineDataPart,
    directory: Optional[Union[str, Path]] = None
) -> Path:
    """
    Decode an inline image and write it to a new uniquely named file.
    
    Raises:
        binascii.Error: If the payload is not valid base64
    """
    data = part.decode()
    
    with tempfile.NamedTemporaryFile(
        mode="wb",
        prefix="ai-generated-image-",
        suffix=f".{extension_for(part.mime_type)}",
        dir=directory,
        delete=False
    ) as f:
        f.write(data)
    
    return Path(f.name)


def image_from_candidates(
    candidates: list[Candidate],
    directory: Optional[Union[str, Path]] = None
) -> GeneratedImage:
    """
    Build an image handle from the first candidate's first media part.
    
    Returns:
        Handle to a local file for inline data, to the URI for file data,
        or an empty handle when neither part is present
    """
    if not candidates:
        return GeneratedImage()
    
    for part in candidates[0].content.parts:
        if isinstance(part, InlineDataPart):
            try:
                path = save_inline_image(part, directory)
            except binascii.Error as e:
                logger.warning("Inline image could not be decoded", error=str(e))
                return GeneratedImage(location=part.data, mime_type=part.mime_type)
            return GeneratedImage(location=str(path), path=path, mime_type=part.mime_type)
        
        if isinstance(part, FileDataPart):
            return GeneratedImage(location=part.file_uri, mime_type=part.mime_type)
    
    return GeneratedImage()
