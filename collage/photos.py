"""
Member photo loading
Fetches photos from URLs, data URIs or local paths and decodes them with Pillow
"""

import base64
import binascii
import concurrent.futures
import io
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import requests
from PIL import Image, ImageOps, UnidentifiedImageError
from loguru import logger

from .config import AppConfig, get_config
from .errors import ImageLoadError


PhotoResult = Union[Image.Image, ImageLoadError]


def _short(source: str) -> str:
    return source if len(source) <= 60 else source[:57] + '...'


class PhotoLoader:
    """Loads member photos; every failure surfaces as ImageLoadError"""

    def __init__(self, config: AppConfig = None, session: requests.Session = None):
        self.config = config or get_config()
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': self.config.USER_AGENT})

    def fetch_bytes(self, source: str) -> bytes:
        """Raw encoded bytes for a photo source"""
        if not source or not source.strip():
            raise ImageLoadError(source or '', "empty photo source")

        if source.startswith('data:'):
            return self._decode_data_uri(source)

        if source.startswith(('http://', 'https://')):
            return self._download(source)

        return self._read_local(source)

    def local_roots(self) -> List[Path]:
        """Directories local photo paths must resolve into"""
        dirs = [Path(self.config.PLACEHOLDER_EVEN).parent, Path(self.config.PLACEHOLDER_ODD).parent]
        dirs.extend(Path(d) for d in self.config.LOCAL_PHOTO_DIRS)
        return list(dict.fromkeys(d.resolve() for d in dirs))

    def _read_local(self, source: str) -> bytes:
        path = Path(source).resolve()
        if not any(path.is_relative_to(root) for root in self.local_roots()):
            logger.warning(f"Refusing to read photo outside the photo directories: {_short(source)}")
            raise ImageLoadError(source, "local path is outside the allowed photo directories")
        try:
            return path.read_bytes()
        except OSError as e:
            raise ImageLoadError(source, f"cannot read file ({e})")

    def _decode_data_uri(self, source: str) -> bytes:
        header, sep, payload = source.partition(',')
        if not sep or ';base64' not in header:
            raise ImageLoadError(source, "data URI is not base64 encoded")
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageLoadError(source, f"invalid base64 payload ({e})")

    def _download(self, url: str) -> bytes:
        try:
            response = self.session.get(url, timeout=self.config.IMAGE_FETCH_TIMEOUT)
            response.raise_for_status()
            return response.content
        except requests.RequestException as e:
            raise ImageLoadError(url, f"download failed ({e})")

    def load(self, source: str) -> Image.Image:
        """Decode a photo into an RGB image with EXIF orientation applied"""
        data = self.fetch_bytes(source)
        try:
            with Image.open(io.BytesIO(data)) as img:
                img = ImageOps.exif_transpose(img)
                img = img.convert('RGB')
                img.load()
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise ImageLoadError(source, f"cannot decode image ({e})")

        logger.debug(f"Loaded photo {_short(source)} ({img.size[0]}x{img.size[1]})")
        return img

    def load_many(self, sources: Iterable[str], max_workers: Optional[int] = None) -> Dict[str, PhotoResult]:
        """
        Load each distinct source once, concurrently.

        Returns a mapping from source to either the decoded image or the
        ImageLoadError that prevented loading it.
        """
        unique = list(dict.fromkeys(s for s in sources if s))
        results: Dict[str, PhotoResult] = {}
        if not unique:
            return results

        workers = max(1, min(max_workers or self.config.MAX_CONCURRENT_FETCHES, len(unique)))

        # Few photos: skip the thread pool overhead
        if workers == 1:
            for source in unique:
                results[source] = self._load_or_error(source)
            return results

        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_source = {
                executor.submit(self._load_or_error, source): source
                for source in unique
            }
            for future in concurrent.futures.as_completed(future_to_source):
                results[future_to_source[future]] = future.result()

        failures = sum(1 for r in results.values() if isinstance(r, ImageLoadError))
        logger.info(f"Loaded {len(results) - failures}/{len(results)} photos")
        return results

    def _load_or_error(self, source: str) -> PhotoResult:
        try:
            return self.load(source)
        except ImageLoadError as e:
            return e
