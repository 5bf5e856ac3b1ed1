import logging
import os
import platform
import re
from typing import Dict, List, Optional, Tuple

from PIL import ImageFont

logger = logging.getLogger(__name__)


# --- FontManager Class ---
class FontManager:
    """
    Scans the system font directories and resolves a family name plus bold flag
    to a Pillow font. Falls back to a common sans font, then to Pillow's
    built-in font, so text always renders.
    """

    _STYLE_SUFFIXES = [
        re.compile(r'[\s_\-](?:bold|heavy|black)[\s_\-]?(?:italic|oblique)', re.IGNORECASE),
        re.compile(r'[\s_\-](?:bold|heavy|black)', re.IGNORECASE),
        re.compile(r'[\s_\-](?:italic|oblique)', re.IGNORECASE),
        re.compile(r'[\s_\-](?:regular|normal|roman|thin|light|medium|semibold|demi|extrabold)', re.IGNORECASE),
        re.compile(r'[\s_\-](?:mt|ms|ps)$', re.IGNORECASE),
    ]
    _BOLD = re.compile(r'bold|heavy|black|demi|semibold', re.IGNORECASE)
    _ITALIC = re.compile(r'italic|oblique', re.IGNORECASE)

    def __init__(self, font_dirs: Optional[List[str]] = None):
        self._font_dirs = font_dirs if font_dirs is not None else self._common_font_dirs()
        # {family: {'normal': path, 'bold': path}}
        self._fonts_by_family = self._index_fonts()
        self._default_font_path = self._find_default_font_path()
        self._cache: Dict[Tuple[str, int, bool], ImageFont.ImageFont] = {}
        if not self._default_font_path:
            logger.warning("FontManager: No system font found; text will use Pillow's built-in font.")

    @staticmethod
    def _common_font_dirs() -> List[str]:
        if platform.system() == 'Windows':
            return [os.path.join(os.environ.get('WINDIR', 'C:\\Windows'), 'Fonts')]
        if platform.system() == 'Darwin':
            return [
                '/Library/Fonts',
                '/System/Library/Fonts',
                '/System/Library/Fonts/Supplemental',
                os.path.expanduser('~/Library/Fonts'),
            ]
        return [
            '/usr/share/fonts',
            '/usr/local/share/fonts',
            os.path.expanduser('~/.fonts'),
        ]

    def _scan(self) -> List[Tuple[str, str]]:
        found = []
        for d in self._font_dirs:
            if not os.path.isdir(d):
                continue
            for root, _, files in os.walk(d):
                for f in files:
                    if f.lower().endswith(('.ttf', '.otf')):
                        display_name = os.path.splitext(f)[0].replace('_', ' ')
                        found.append((display_name, os.path.join(root, f)))
        return sorted(found, key=lambda item: item[0].lower())

    def _canonical_name(self, name: str) -> str:
        cleaned = name
        for pattern in self._STYLE_SUFFIXES:
            cleaned = pattern.sub('', cleaned).strip()
        cleaned = re.sub(r'(?<=[a-z])(?=[A-Z])', ' ', cleaned)
        cleaned = re.sub(r'\s+', ' ', cleaned).strip()
        return cleaned.lower() or name.lower()

    def _index_fonts(self) -> Dict[str, Dict[str, str]]:
        indexed: Dict[str, Dict[str, str]] = {}
        for display_name, path in self._scan():
            if self._ITALIC.search(display_name):
                continue
            weight = 'bold' if self._BOLD.search(display_name) else 'normal'
            indexed.setdefault(self._canonical_name(display_name), {}).setdefault(weight, path)
        return indexed

    def _find_default_font_path(self) -> Optional[str]:
        for family in ('dejavu sans', 'liberation sans', 'arial', 'helvetica', 'free sans'):
            variants = self._fonts_by_family.get(family)
            if variants and 'normal' in variants:
                return variants['normal']
        for variants in self._fonts_by_family.values():
            if 'normal' in variants:
                return variants['normal']
        return None

    def get_font_filepath(self, family: str, bold: bool = False) -> Optional[str]:
        variants = self._fonts_by_family.get(self._canonical_name(family or ''))
        if not variants:
            return self._default_font_path
        weight = 'bold' if bold else 'normal'
        return variants.get(weight) or variants.get('normal') or self._default_font_path

    def get_pil_font(self, family: str, size: int = 12, bold: bool = False) -> ImageFont.ImageFont:
        """Returns a Pillow font of `size` pixels for the family, never None."""
        size = max(1, int(round(size)))
        key = (family or '', size, bool(bold))
        if key in self._cache:
            return self._cache[key]

        font = None
        font_path = self.get_font_filepath(family, bold)
        if font_path:
            try:
                font = ImageFont.truetype(font_path, size)
            except OSError as e:
                logger.warning(f"FontManager.get_pil_font: Error loading {font_path} (size {size}): {e}")
        if font is None:
            font = ImageFont.load_default(size=size)
        self._cache[key] = font
        return font
