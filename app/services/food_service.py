import logging
from typing import List, Optional, Tuple

from app.models.food import FoodMood, FoodRecommendation

logger = logging.getLogger(__name__)

POPULAR_DISH_COUNT = 3

FOOD_MOODS = [
    FoodMood(emoji="😋", mood="craving", label="Craving Something"),
    FoodMood(emoji="🌶️", mood="spicy", label="Spicy Mood"),
    FoodMood(emoji="🥗", mood="healthy", label="Healthy Choice"),
    FoodMood(emoji="🍖", mood="hearty", label="Hearty & Filling"),
    FoodMood(emoji="🐟", mood="seafood", label="Fresh Seafood"),
    FoodMood(emoji="🥥", mood="tropical", label="Tropical Vibes"),
    FoodMood(emoji="🍯", mood="sweet", label="Sweet Tooth"),
    FoodMood(emoji="🌿", mood="fresh", label="Light & Fresh"),
    FoodMood(emoji="🔥", mood="comfort", label="Comfort Food"),
    FoodMood(emoji="🎉", mood="festive", label="Celebration Food"),
]

# Ordered by popularity: the head of the list doubles as the no-match fallback.
FOOD_CATALOGUE = [
    FoodRecommendation(
        id="1", name="Dholl Puri", image="🫓",
        description="Mauritius' most famous street food - thin flatbread filled with split peas, "
                    "served with curry, chutney, and pickles.",
        location="Street vendors across Port Louis", priceRange="$2-5", cookingTime="15-20 mins",
        mood=["comfort", "craving", "local"], ingredients=["Split peas", "Flour", "Curry", "Chutney"],
        type="street-food",
    ),
    FoodRecommendation(
        id="2", name="Fish Vindaye", image="🐟",
        description="Traditional Mauritian fish curry with mustard seeds, turmeric, and vinegar. "
                    "A perfect blend of Indian and Creole flavors.",
        location="Local restaurants in Grand Baie", priceRange="$8-15", cookingTime="30-45 mins",
        mood=["seafood", "spicy", "hearty"], ingredients=["Fresh fish", "Mustard seeds", "Turmeric", "Vinegar"],
        type="local",
    ),
    FoodRecommendation(
        id="3", name="Tropical Fruit Salad", image="🥭",
        description="Fresh mix of tropical fruits including lychee, mango, papaya, and passion fruit "
                    "with a hint of lime.",
        location="Beach cafes in Flic en Flac", priceRange="$5-8", cookingTime="10 mins",
        mood=["tropical", "fresh", "healthy", "sweet"], ingredients=["Mango", "Lychee", "Papaya", "Passion fruit"],
        type="restaurant",
    ),
    FoodRecommendation(
        id="4", name="Octopus Curry", image="🐙",
        description="Tender octopus cooked in aromatic spices with coconut milk. "
                    "A beloved seafood dish among locals.",
        location="Mahebourg waterfront restaurants", priceRange="$12-20", cookingTime="1 hour",
        mood=["seafood", "spicy", "festive"], ingredients=["Octopus", "Coconut milk", "Curry spices", "Onions"],
        type="restaurant",
    ),
    FoodRecommendation(
        id="5", name="Alouda", image="🥤",
        description="Refreshing drink made with milk, basil seeds, agar-agar jelly, and flavored syrup. "
                    "Perfect for hot days.",
        location="Street vendors in Port Louis", priceRange="$1-3", cookingTime="5 mins",
        mood=["sweet", "fresh", "tropical"], ingredients=["Milk", "Basil seeds", "Agar jelly", "Syrup"],
        type="street-food",
    ),
    FoodRecommendation(
        id="6", name="Rougaille Saucisse", image="🌭",
        description="Mauritian sausage stew with tomatoes, onions, and thyme. "
                    "A hearty comfort food perfect for dinner.",
        location="Home-style restaurants in Curepipe", priceRange="$6-12", cookingTime="45 mins",
        mood=["comfort", "hearty", "festive"], ingredients=["Sausages", "Tomatoes", "Onions", "Thyme"],
        type="local",
    ),
]


def _matches_query(dish: FoodRecommendation, query: str) -> bool:
    return (query in dish.name.lower()
            or query in dish.description.lower()
            or any(query in ingredient.lower() for ingredient in dish.ingredients))


def find_food_matches(moods: List[str], query: Optional[str] = None) -> Tuple[List[FoodRecommendation], bool]:
    """
    Dishes that fit any of the selected moods and mention the query in their name,
    description or ingredients. An empty mood list or query does not filter.

    Returns the matches and whether they are exact; when nothing fits, the most
    popular dishes are returned instead and the flag is False.
    """
    query = (query or "").strip().lower()
    matches = [
        dish for dish in FOOD_CATALOGUE
        if (not moods or any(mood in dish.mood for mood in moods))
        and (not query or _matches_query(dish, query))
    ]
    if matches:
        return matches, True
    logger.info(f"No dishes for moods={moods} query='{query}', falling back to popular dishes")
    return FOOD_CATALOGUE[:POPULAR_DISH_COUNT], False
