# ─── Constants ──────────────────────────────────────────────────────────────────
PAGE_WIDTH = 792   # Landscape letter page, 1 px == 1 pt
PAGE_HEIGHT = 612
GRID_SIZE = 20
GRID_COLOR = '#e0e0e0'
PANEL_WIDTH = 220
TOOLBAR_HEIGHT = 40

TOOL_SELECT = 'select'
TOOL_BUTTONS = {
    'select':    '⬚',
    'rectangle': '▭',
    'circle':    '◯',
    'line':      '╱',
    'text':      'T',
}
UNKNOWN_TYPE = 'unknown'

# Binding tags recognised by the field binder, keyed by the shape id that carries them
TITLE_TAG = 'title'
INGREDIENTS_TAG = 'ingredients-content'
STEPS_TAG = 'steps-content'
PLATING_TAG = 'plating-guide-content'
ALLERGENS_TAG = 'allergens-content'
SERVICE_TYPES_TAG = 'service-types-content'
RECIPE_IMAGE_TAG = 'recipe-image'
WATERMARK_TAG = 'watermark'
BINDING_TAGS = [
    TITLE_TAG, INGREDIENTS_TAG, STEPS_TAG, PLATING_TAG,
    ALLERGENS_TAG, SERVICE_TYPES_TAG, RECIPE_IMAGE_TAG, WATERMARK_TAG,
]
# Saved templates name the title shape 'recipe-title'
TAG_ALIASES = {'recipe-title': TITLE_TAG}

FALLBACK_TEXT = {
    TITLE_TAG: 'Recipe Title',
    INGREDIENTS_TAG: 'No ingredients listed',
    STEPS_TAG: 'No steps provided',
    PLATING_TAG: 'No plating guide provided',
    ALLERGENS_TAG: 'None listed',
    SERVICE_TYPES_TAG: 'Not specified',
}
WATERMARK_OPACITY = 0.3

# Defaults used when a stored record omits a value
DEFAULT_TEXT_WIDTH = 300
DEFAULT_IMAGE_SIZE = 150
DEFAULT_FONT_SIZE = 12
DEFAULT_FONT_FAMILY = 'Arial'
BRAND_COLOR = '#8B1538'

DEFAULT_TEMPLATE_NAME = 'default'
RECIPE_TEMPLATE_PREFIX = 'recipe-'
