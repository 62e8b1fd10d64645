"""Closed option sets offered to the user, and their defaults."""

from typing import Dict, List

GENDER_OPTIONS: List[str] = ["Female", "Male", "Androgynous"]
BODY_TYPE_OPTIONS: List[str] = ["Slim", "Average", "Athletic", "Curvy", "Plus-size"]
AGE_RANGE_OPTIONS: List[str] = ["18-25", "26-35", "36-45", "46-55", "55+"]
ETHNICITY_OPTIONS: List[str] = [
    "Ambiguous Ethnicity",
    "Caucasian",
    "Black/African Descent",
    "East Asian",
    "South Asian",
    "Hispanic/Latino",
    "Middle Eastern",
    "Mixed-race",
]
HAIR_STYLE_OPTIONS: List[str] = [
    "Default", "Short", "Long", "Curly", "Wavy", "Straight", "Bun", "Ponytail", "Braids", "Bald",
]
HAIR_COLOR_OPTIONS: List[str] = [
    "Default", "Black", "Brown", "Blonde", "Red", "Auburn", "Gray", "Platinum",
]
HEIGHT_OPTIONS: List[str] = ["Petite", "Average", "Tall"]
POSE_OPTIONS: List[str] = [
    "Default", "Standing", "Walking", "Sitting", "Leaning", "Hands on Hips", "Over the Shoulder",
]
ACCESSORIES_OPTIONS: List[str] = [
    "None", "Sunglasses", "Handbag", "Hat", "Jewelry", "Scarf", "Watch",
]

# Display label -> preset key sent to the backend
BACKGROUND_PRESETS: Dict[str, str] = {
    "Studio - White": "studio-white",
    "Studio - Gradient": "studio-gradient",
    "In Store": "in-store",
    "Lifestyle - Home": "lifestyle-home",
    "Lifestyle - Office": "lifestyle-office",
    "Outdoor - Urban": "outdoor-urban",
    "Outdoor - Nature": "outdoor-nature",
    "Seasonal - Spring": "seasonal-spring",
    "Seasonal - Summer": "seasonal-summer",
    "Seasonal - Fall": "seasonal-fall",
    "Seasonal - Winter": "seasonal-winter",
}
LIGHTING_OPTIONS: List[str] = [
    "Studio Softbox",
    "Natural Daylight",
    "Golden Hour Sunlight",
    "Dramatic Rim Lighting",
    "Cinematic Moody",
]
LENS_STYLE_OPTIONS: List[str] = [
    "Fashion Magazine (Standard)",
    "Portrait (Shallow DoF)",
    "Wide Angle Environmental",
    "Cinematic Look",
]
TIME_OF_DAY_OPTIONS: List[str] = ["Default", "Morning", "Midday", "Afternoon", "Golden Hour", "Evening", "Night"]
WEATHER_OPTIONS: List[str] = ["Default", "Clear", "Cloudy", "Overcast", "Rainy", "Snowy", "Foggy"]
SEASON_OPTIONS: List[str] = ["Default", "Spring", "Summer", "Fall", "Winter"]
CAMERA_ANGLE_OPTIONS: List[str] = ["Eye Level", "Low Angle", "High Angle", "Full Body", "Close-up", "Three-Quarter"]

ACCEPTED_IMAGE_TYPES: List[str] = ["image/jpeg", "image/png", "image/webp"]

DEFAULT_MODEL_SETTINGS: Dict[str, str] = {
    "gender": "Female",
    "bodyType": "Slim",
    "ageRange": "18-25",
    "ethnicity": "Caucasian",
    "hairStyle": "Short",
    "hairColor": "Black",
    "height": "Average",
    "pose": "Standing",
    "accessories": "None",
}

DEFAULT_ENVIRONMENT_SETTINGS: Dict[str, str] = {
    "backgroundPreset": "studio-white",
    "backgroundCustom": "",
    "lighting": "Studio Softbox",
    "lensStyle": "Fashion Magazine (Standard)",
    "timeOfDay": "Morning",
    "weather": "Clear",
    "season": "Spring",
    "cameraAngle": "Eye Level",
}
