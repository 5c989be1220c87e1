"""Built-in seed recipes shown on the public listing."""

from .models import RecipeCreate


SEED_RECIPES = [
    RecipeCreate(
        name="Lemon Herb Roast Chicken",
        hero_ingredient="Chicken",
        cook_time_minutes=90,
        servings=4,
        ingredients="1 whole chicken\n2 lemons\n4 cloves garlic\nFresh thyme and rosemary\n3 tbsp olive oil\nSalt and pepper",
        instructions="Heat oven to 220C. Stuff the chicken with halved lemons, garlic and herbs. "
        "Rub with oil, season well and roast for 75-90 minutes until the juices run clear. "
        "Rest for 10 minutes before carving.",
    ),
    RecipeCreate(
        name="Spaghetti Aglio e Olio",
        hero_ingredient="Pasta",
        cook_time_minutes=20,
        servings=2,
        ingredients="200g spaghetti\n6 cloves garlic\n1/2 cup olive oil\n1 tsp chilli flakes\nParsley",
        instructions="Cook the spaghetti. Gently fry sliced garlic and chilli in the oil until golden. "
        "Toss with the drained pasta, a splash of pasta water and chopped parsley.",
    ),
    RecipeCreate(
        name="Pan-Seared Salmon",
        hero_ingredient="Fish",
        cook_time_minutes=15,
        servings=2,
        ingredients="2 salmon fillets\n1 tbsp butter\n1 lemon\nSalt and pepper",
        instructions="Season the fillets and sear skin-side down in a hot pan for 5 minutes. "
        "Flip, add butter and baste for 2-3 minutes. Finish with lemon juice.",
    ),
]
