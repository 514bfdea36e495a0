"""Recipe Pydantic models."""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Units(str, Enum):
    """Measurement system requested for the recipe."""

    METRIC = "metric"
    IMPERIAL = "imperial"

    @classmethod
    def parse(cls, value: Any) -> "Units":
        """Lenient parse: anything unrecognised falls back to metric."""
        if isinstance(value, Units):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.METRIC


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class RecipeRequest(_Frozen):
    """Inbound request for recipe generation."""

    prompt: str = Field("", description="Free-text description of the dish the user wants")
    pantryItems: List[str] = Field(default_factory=list, description="Ingredients to prioritize")
    units: Units = Field(Units.METRIC, description="metric or imperial")
    dietaryPreferences: List[str] = Field(default_factory=list, description="e.g. vegan, gluten-free")
    allergies: List[str] = Field(default_factory=list, description="Allergens to avoid")
    maxTotalMinutes: Optional[int] = Field(
        None, gt=0, description="Maximum total time in minutes (omit for no limit)"
    )

    @field_validator("prompt", mode="before")
    @classmethod
    def _none_prompt(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("units", mode="before")
    @classmethod
    def _lenient_units(cls, value: Any) -> Units:
        return Units.parse(value)

    @field_validator("pantryItems", "dietaryPreferences", "allergies", mode="before")
    @classmethod
    def _clean_list(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(v).strip() for v in value if v is not None and str(v).strip()]


class NutritionValues(_Frozen):
    """Nutritional values for a serving or for the whole recipe."""

    calories: Optional[float] = Field(None, description="Calories (kcal).")
    protein: Optional[float] = Field(None, description="Protein (grams).")
    carbohydrates: Optional[float] = Field(None, description="Total carbohydrates (grams).")
    fat: Optional[float] = Field(None, description="Total fat (grams).")
    fiber: Optional[float] = Field(None, description="Dietary fiber (grams).")
    sodium: Optional[float] = Field(None, description="Sodium (milligrams).")


class NutritionalInfo(_Frozen):
    """Nutritional information calculated from ingredients."""

    perServing: Optional[NutritionValues] = Field(None, description="Nutritional values per single serving.")
    total: Optional[NutritionValues] = Field(None, description="Total nutritional values for entire recipe.")


class RecipeTips(_Frozen):
    """Substitutions, make-ahead, storage and reheating advice."""

    substitutions: List[str] = Field(
        default_factory=list,
        description="Common ingredient substitutions (e.g., 'Greek yogurt can replace sour cream').",
    )
    makeAhead: Optional[str] = Field(None, description="Instructions for preparing the recipe in advance.")
    storage: Optional[str] = Field(None, description="How to store leftovers and for how long.")
    reheating: Optional[str] = Field(None, description="Best method to reheat the dish.")
    variations: List[str] = Field(default_factory=list, description="Recipe variations or customization ideas.")


class GeneratedRecipe(_Frozen):
    """Recipe fields the model is asked to produce (source of the response schema)."""

    recipeName: str = Field(..., description="The creative name of the recipe.")
    description: Optional[str] = Field(None, description="A brief, appealing description of the dish.")
    ingredients: List[str] = Field(..., min_length=1, description="A list of ingredients with quantities.")
    instructions: List[str] = Field(..., min_length=1, description="Step-by-step instructions for preparation.")
    prepTime: Optional[str] = Field(None, description="Estimated preparation time (e.g., '15 minutes').")
    cookTime: Optional[str] = Field(None, description="Estimated cooking time (e.g., '20 minutes').")
    estimatedTime: Optional[str] = Field(
        None, description="Human-readable total time estimate (e.g., '35 minutes' or '1 hour')."
    )
    estimatedTimeMinutes: Optional[int] = Field(
        None, ge=0, description="Total estimated time in minutes as an integer."
    )
    servings: str = Field(..., description="Number of servings the recipe yields (e.g., '4').")
    nutritionalInfo: Optional[NutritionalInfo] = Field(
        None, description="Nutritional information calculated from ingredients."
    )
    tips: Optional[RecipeTips] = Field(None, description="Recipe tips.")

    @field_validator("servings", "prepTime", "cookTime", "estimatedTime", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        # Models sometimes answer "servings": 4 despite the string schema
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class ImageGenerationStatus(str, Enum):
    NOT_ATTEMPTED = "not_attempted"
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    MOCK_PLACEHOLDER = "mock_placeholder"


class ImageSource(str, Enum):
    INLINE = "inline"
    EXTERNAL = "external"
    PLACEHOLDER = "placeholder"
    EMPTY = ""


class ImageGenerationMeta(_Frozen):
    """Outcome of the image step attached to every recipe result."""

    status: ImageGenerationStatus = ImageGenerationStatus.NOT_ATTEMPTED
    source: ImageSource = ImageSource.EMPTY
    errorMessage: Optional[str] = None


class RecipeResult(GeneratedRecipe):
    """Recipe returned to callers."""

    imageUrl: Optional[str] = Field(None, description="Data URI or external URL of the dish image")
    imageGeneration: ImageGenerationMeta = Field(..., description="Image generation status")


class RecipeContext(_Frozen):
    """Lenient recipe shape accepted as image-prompt context."""

    recipeName: Optional[str] = None
    description: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)

    @field_validator("ingredients", mode="before")
    @classmethod
    def _none_list(cls, value: Any) -> Any:
        return [] if value is None else value


class ImageGenerationRequest(_Frozen):
    """Inbound request for standalone image generation."""

    prompt: Optional[str] = None
    recipe: Optional[RecipeContext] = None


class ImageGenerationResponse(_Frozen):
    """Result of a standalone image generation call."""

    status: ImageGenerationStatus
    imageUrl: Optional[str] = None
    source: ImageSource = ImageSource.EMPTY
    errorMessage: Optional[str] = None

    @classmethod
    def failed(cls, message: str) -> "ImageGenerationResponse":
        return cls(status=ImageGenerationStatus.FAILED, errorMessage=message)


class ConstraintViolationDetails(BaseModel):
    violations: List[str]


class ConstraintViolationResponse(BaseModel):
    """Body returned when a recipe violates requested constraints."""

    error: str = "constraint_violation"
    message: str
    details: ConstraintViolationDetails
