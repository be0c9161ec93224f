# Algorithm tags carried by RecommendationResult.algorithm and used as
# tracking counter namespaces.
ALGO_HYBRID = "hybrid"
ALGO_COLLABORATIVE = "collaborative-filtering"
ALGO_CONTENT = "content-based"
ALGO_ITEM_BASED = "item-based"
ALGO_TRENDING = "trending"


# Order statuses that count as a completed purchase
COMPLETED_ORDER_STATUSES = ("delivered", "payment_completed")

# Item-based list weights
WEIGHT_CO_BOUGHT = 0.4
WEIGHT_CATEGORY = 0.3
WEIGHT_TAG = 0.2
WEIGHT_PRICE_BAND = 0.1

# Hybrid fusion weights
WEIGHT_COLLABORATIVE = 0.6
WEIGHT_CONTENT = 0.4

# Preference profile sizes
TOP_CATEGORIES = 3
TOP_TAGS = 5

# Confidence saturation points
SIMILAR_USERS_FOR_FULL_CONFIDENCE = 5
ORDERS_FOR_FULL_CONFIDENCE = 3

# Human-readable reasons
REASON_HYBRID = "Personalized picks combining similar shoppers and your own taste"
REASON_COLLABORATIVE = "Customers with similar taste bought these"
REASON_CONTENT = "Matched to your purchase pattern"
REASON_ITEM_BASED = "Bought together with or similar to this product"
REASON_TRENDING = "Most popular right now"
REASON_PRODUCT_NOT_FOUND = "not found"
REASON_UNAVAILABLE = "Recommendations are temporarily unavailable"
