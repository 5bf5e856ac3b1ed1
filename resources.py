# resources.py
#
# Bitmap loading with a placeholder policy, and request tokens for
# latest-request-wins cancellation of background loads.

import io
import logging
import os
import threading
from collections import OrderedDict
from typing import Iterable, Optional
from urllib.parse import urlsplit

import httpx
from PIL import Image, ImageDraw, UnidentifiedImageError

from errors import ResourceLoadError

logger = logging.getLogger(__name__)

PLACEHOLDER_SIZE = (150, 150)
CACHE_SIZE = 64


class Bitmap:
    """A decoded image plus where it came from."""

    def __init__(self, image: Image.Image, path: str, origin: str,
                 readable: bool = True, is_placeholder: bool = False):
        self.image = image.convert('RGBA')
        self.path = path
        self.origin = origin
        self.readable = readable
        self.is_placeholder = is_placeholder

    @property
    def size(self):
        return self.image.size

    def __repr__(self):
        flag = ' placeholder' if self.is_placeholder else ''
        return f"Bitmap({self.path!r}, origin={self.origin!r}{flag})"


def origin_of(path: str) -> str:
    parts = urlsplit(path)
    if parts.scheme in ('http', 'https'):
        return f"{parts.scheme}://{parts.netloc}"
    return 'file'


class BitmapSource:
    """
    Loads bitmaps by path or URL. `load` never raises: anything missing or
    unreadable is replaced by the placeholder bitmap.
    """

    def __init__(self, uploads_dir: str = 'Uploads',
                 placeholder_path: Optional[str] = None,
                 logo_path: Optional[str] = None,
                 api_url: Optional[str] = None,
                 trusted_origins: Iterable[str] = ('file', 'placeholder'),
                 timeout: float = 30.0,
                 client: Optional[httpx.Client] = None,
                 cache_size: int = CACHE_SIZE):
        self.uploads_dir = uploads_dir
        self.placeholder_path = placeholder_path
        self.logo_path = logo_path
        self.api_url = api_url.rstrip('/') if api_url else None
        self.trusted_origins = set(trusted_origins)
        if self.api_url:
            self.trusted_origins.add(origin_of(self.api_url))
        self.timeout = timeout
        self._client = client
        self.cache_size = max(1, cache_size)
        # Least recently used first
        self._cache: "OrderedDict[str, Bitmap]" = OrderedDict()
        self._placeholder: Optional[Bitmap] = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> 'BitmapSource':
        return cls(uploads_dir=settings.uploads_dir,
                   placeholder_path=settings.placeholder_image,
                   logo_path=settings.logo_image,
                   api_url=settings.api_url,
                   trusted_origins=settings.trusted_origins,
                   timeout=settings.http_timeout)

    # --- Paths ------------------------------------------------------------------

    def resolve(self, reference: str) -> str:
        """
        Maps a recipe image reference (often '/Uploads/<file>') to a loadable
        path: the API's upload URL when an API is configured, else a file in
        the local uploads directory.
        """
        if reference.startswith(('http://', 'https://')):
            return reference
        if os.path.isabs(reference) and os.path.exists(reference):
            return reference
        filename = reference.replace('\\', '/').split('/')[-1]
        if self.api_url:
            return f"{self.api_url}/Uploads/{filename}"
        return os.path.join(self.uploads_dir, filename)

    # --- Loading ----------------------------------------------------------------

    def load(self, path: Optional[str]) -> Bitmap:
        if not path:
            return self.placeholder()
        with self._lock:
            cached = self._cache.get(path)
            if cached is not None:
                self._cache.move_to_end(path)
        if cached is not None:
            return cached
        try:
            bitmap = self._fetch(path)
        except ResourceLoadError as e:
            logger.warning(f"BitmapSource.load: {e.message}; using placeholder.")
            return self.placeholder()
        with self._lock:
            self._cache[path] = bitmap
            self._cache.move_to_end(path)
            while len(self._cache) > self.cache_size:
                evicted, _ = self._cache.popitem(last=False)
                logger.debug(f"BitmapSource.load: Evicted {evicted} from the cache.")
        return bitmap

    def recipe_image(self, recipe) -> Bitmap:
        reference = getattr(recipe, 'image', None)
        if not reference:
            return self.placeholder()
        return self.load(self.resolve(reference))

    def watermark(self) -> Bitmap:
        return self.load(self.logo_path)

    def placeholder(self) -> Bitmap:
        if self._placeholder is None:
            image = None
            if self.placeholder_path and os.path.exists(self.placeholder_path):
                try:
                    with Image.open(self.placeholder_path) as opened:
                        image = opened.convert('RGBA')
                except (OSError, UnidentifiedImageError) as e:
                    logger.warning(f"BitmapSource.placeholder: Cannot read {self.placeholder_path}: {e}")
            if image is None:
                image = _drawn_placeholder()
            self._placeholder = Bitmap(image, self.placeholder_path or '<placeholder>',
                                       origin='placeholder', is_placeholder=True)
        return self._placeholder

    def _fetch(self, path: str) -> Bitmap:
        origin = origin_of(path)
        if origin == 'file':
            data = self._read_file(path)
        else:
            data = self._download(path)
        try:
            with Image.open(io.BytesIO(data)) as opened:
                image = opened.convert('RGBA')
        except (OSError, UnidentifiedImageError) as e:
            raise ResourceLoadError(path, f"not a readable image ({e})") from e
        return Bitmap(image, path, origin, readable=origin in self.trusted_origins)

    @staticmethod
    def _read_file(path: str) -> bytes:
        try:
            with open(path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise ResourceLoadError(path, e.strerror or str(e)) from e

    def _download(self, url: str) -> bytes:
        client = self._client or httpx.Client(timeout=self.timeout, follow_redirects=True)
        try:
            response = client.get(url)
            response.raise_for_status()
            return response.content
        except httpx.HTTPError as e:
            raise ResourceLoadError(url, str(e) or type(e).__name__) from e
        finally:
            if self._client is None:
                client.close()


def _drawn_placeholder() -> Image.Image:
    w, h = PLACEHOLDER_SIZE
    image = Image.new('RGBA', (w, h), (238, 238, 238, 255))
    draw = ImageDraw.Draw(image)
    draw.rectangle([0, 0, w - 1, h - 1], outline=(180, 180, 180, 255))
    draw.line([(0, 0), (w - 1, h - 1)], fill=(200, 200, 200, 255))
    draw.line([(0, h - 1), (w - 1, 0)], fill=(200, 200, 200, 255))
    return image


class RequestTracker:
    """
    Issues monotonically increasing tokens. Only the most recent token is
    current; results carrying an older token are stale and get dropped.
    """

    def __init__(self):
        self._token = 0
        self._lock = threading.Lock()

    def issue(self) -> int:
        with self._lock:
            self._token += 1
            return self._token

    def invalidate(self):
        self.issue()

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._token

    @property
    def current(self) -> int:
        return self._token
