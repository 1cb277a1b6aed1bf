"""Trait keys rated on report cards, grouped by category."""
from core.choices import TraitCategory

PSYCHOMOTOR_TRAITS = {
    'accuracy': 'Accuracy',
    'arts_and_craft': 'Arts and Craft',
    'dexterity': 'Dexterity',
    'punctuality': 'Punctuality',
    'musical_skills': 'Musical Skills',
    'handwriting': 'Handwriting',
}

AFFECTIVE_TRAITS = {
    'neatness': 'Neatness',
    'initiative': 'Initiative',
    'honesty': 'Honesty',
    'friendship': 'Friendship',
    'diligence': 'Diligence',
    'creativity': 'Creativity',
    'concentration': 'Concentration',
    'cooperative': 'Co-operative',
    'attendance': 'Attendance',
    'behaviour': 'Behaviour',
}

TRAITS_BY_CATEGORY = {
    TraitCategory.PSYCHOMOTOR: PSYCHOMOTOR_TRAITS,
    TraitCategory.AFFECTIVE: AFFECTIVE_TRAITS,
}

TRAIT_RATINGS = {
    5: 'Excellent',
    4: 'High level',
    3: 'Acceptable level',
    2: 'Minimal level',
    1: 'No observable trait',
}


def category_for(trait):
    for category, traits in TRAITS_BY_CATEGORY.items():
        if trait in traits:
            return category
    return None
