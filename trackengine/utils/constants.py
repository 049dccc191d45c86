"""
Engine Constants

This module contains all engine-wide constants to avoid magic numbers
and improve maintainability.
"""

# Distance conversion
METERS_PER_KM = 1000.0
KM_PER_MILE = 1.609344
EARTH_RADIUS_KM = 6371.0088  # mean radius, matches the GeoJSON tooling on the display side

# Time conversion
MS_PER_SECOND = 1000.0

# Projection
GREAT_CIRCLE_THRESHOLD_MILES = 300.0  # pairs at least this far apart get a great-circle path
GREAT_CIRCLE_POINTS = 100
ANTIMERIDIAN_LAT_LIMIT = 89.9
LONGITUDE_SPAN = 360.0
HALF_LONGITUDE_SPAN = 180.0

# Interline segments
DEFAULT_TRACK_THICKNESS = 8  # rendered line width, in screen pixels
SOLID_ICON = "solid"
PATTERN_SEPARATOR = "|"
PATTERN_SET_SEPARATOR = "-"
SEGMENT_KEY_SEPARATOR = "|"

# Line icons are only honored for palette colors and known shapes
LINE_ICON_SHAPES = frozenset({"circle", "diamond", "heart", "plus", "star"})
COLOR_TO_NAME = {
    "#e6194b": "red",
    "#3cb44b": "green",
    "#ffe119": "yellow",
    "#4363d8": "blue",
    "#f58231": "orange",
    "#911eb4": "purple",
    "#42d4f4": "cyan",
    "#f032e6": "magenta",
    "#bfef45": "lime",
    "#fabebe": "pink",
    "#469990": "teal",
    "#e6beff": "lavender",
    "#9a6324": "brown",
    "#fffac8": "beige",
    "#800000": "maroon",
    "#aaffc3": "mint",
    "#808000": "olive",
    "#ffd8b1": "apricot",
    "#000075": "navy",
    "#a9a9a9": "grey",
    "#191919": "black",
}

# Vehicle simulation
DEFAULT_LINE_MODE = "RAPID"
MIN_VEHICLE_SPEED = 0.01  # km/s, ramps never stall a moving vehicle
FALLBACK_ROUTE_DISTANCE_KM = 1.0
MIN_VEHICLE_STOPS = 2

# Animation
FRAME_INTERVAL_SECONDS = 1.0 / 60.0
VEHICLE_SET_SWAP_DELAY_SECONDS = 0.01
VEHICLE_LAYER_PREFIX = "vehicles--"

# Feature roles
ROLE_TRACK = "track"
ROLE_SEGMENT = "segment"
ROLE_VEHICLE = "vehicle"
