"""
Weight and volume variants a product can be sold in.

Clients submit weights as unit tokens ("500gm", "1ltr") and may include the token
"custom" to mean "see the custom weight list". Inside the service the selection is
converted into explicit StandardWeight / CustomWeight entries, so the "custom"
token never reaches storage.
"""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from src.services.errors import ValidationError

CUSTOM_WEIGHT_TOKEN = "custom"

MASS_WEIGHTS = (
    "25gm", "50gm", "100gm", "150gm", "200gm", "250gm", "300gm", "350gm", "400gm",
    "500gm", "600gm", "700gm", "750gm", "800gm", "900gm",
    "1kg", "1.5kg", "2kg", "2.5kg", "3kg", "3.5kg", "4kg", "5kg", "6kg", "7kg", "8kg", "9kg", "10kg",
)

VOLUME_WEIGHTS = (
    "50ml", "100ml", "150ml", "200ml", "250ml", "300ml", "350ml", "400ml", "450ml", "500ml",
    "550ml", "600ml", "650ml", "700ml", "750ml", "800ml", "850ml", "900ml", "950ml",
    "1ltr", "1.5ltr", "2ltr", "2.5ltr", "3ltr", "3.5ltr", "4ltr", "5ltr", "6ltr", "7ltr", "8ltr", "9ltr", "10ltr",
)

STANDARD_WEIGHTS = frozenset(MASS_WEIGHTS + VOLUME_WEIGHTS)
VALID_WEIGHT_TOKENS = STANDARD_WEIGHTS | {CUSTOM_WEIGHT_TOKEN}


class CustomWeightUnit(str, Enum):
    GM = "gm"
    KG = "kg"
    ML = "ml"
    LTR = "ltr"
    PIECES = "pieces"
    PACK = "pack"
    BOTTLE = "bottle"
    BOX = "box"
    OTHER = "other"


class StandardWeight(BaseModel):
    kind: Literal["standard"] = "standard"
    unit: str


class CustomWeight(BaseModel):
    kind: Literal["custom"] = "custom"
    value: str
    unit: CustomWeightUnit
    description: str = ""


WeightSelection = Annotated[StandardWeight | CustomWeight, Field(discriminator="kind")]


def find_invalid_weights(tokens: list[str], allowed=VALID_WEIGHT_TOKENS) -> list[str]:
    """Return every token not in ``allowed``, in submission order."""
    return [token for token in tokens if token not in allowed]


def validate_weight_tokens(tokens: list[str], allowed=VALID_WEIGHT_TOKENS, label: str = "Invalid weight options"):
    """Reject the whole batch if any token is unknown, naming all of them."""
    invalid = find_invalid_weights(tokens, allowed)
    if invalid:
        raise ValidationError(f"{label}: {', '.join(str(token) for token in invalid)}")


def parse_custom_weights(raw_entries: list[Any] | None) -> tuple[list[CustomWeight], list[str]]:
    """
    Validate raw custom weight entries.

    Returns the parsed entries and a list of error messages; entries that fail are skipped.
    """
    parsed: list[CustomWeight] = []
    errors: list[str] = []
    for position, entry in enumerate(raw_entries or [], start=1):
        if isinstance(entry, CustomWeight):
            entry = entry.model_dump()
        if not isinstance(entry, dict):
            errors.append(f"Custom weight #{position} must be an object with value and unit")
            continue

        value = str(entry.get("value") or "").strip()
        unit = entry.get("unit")
        if not value or not unit:
            errors.append(f"Custom weight #{position}: value and unit are required")
            continue

        try:
            parsed.append(
                CustomWeight(
                    value=value,
                    unit=unit,
                    description=str(entry.get("description") or "").strip(),
                )
            )
        except PydanticValidationError:
            errors.append(f"Invalid custom weight unit: {unit}")
    return parsed, errors


def parse_weight_selections(tokens: list[str] | str | None, custom_weights: list[Any] | None = None) -> list[WeightSelection]:
    """
    Convert a client weight submission into tagged selections.

    ``tokens`` may contain the "custom" token, in which case ``custom_weights`` must hold at
    least one valid entry. All problems are collected into a single ValidationError.
    """
    if isinstance(tokens, str):
        tokens = [tokens]
    tokens = list(tokens or [])

    if not tokens:
        raise ValidationError("At least one weight option must be selected")

    errors = []
    invalid = find_invalid_weights(tokens)
    if invalid:
        errors.append(f"Invalid weight options: {', '.join(str(token) for token in invalid)}")

    selections: list[WeightSelection] = []
    seen = set()
    for token in tokens:
        if token in STANDARD_WEIGHTS and token not in seen:
            seen.add(token)
            selections.append(StandardWeight(unit=token))

    if CUSTOM_WEIGHT_TOKEN in tokens:
        if not custom_weights:
            errors.append("Custom weight details are required when 'custom' is selected")
        else:
            parsed, custom_errors = parse_custom_weights(custom_weights)
            errors.extend(custom_errors)
            selections.extend(parsed)

    if errors:
        raise ValidationError(errors)
    return selections


def split_weight_selections(selections: list[WeightSelection]) -> tuple[list[str], list[dict[str, str]]]:
    """Return the stored (available_weights, custom_weights) pair for a list of selections."""
    available = [s.unit for s in selections if s.kind == "standard"]
    custom = [
        {"value": s.value, "unit": s.unit.value, "description": s.description}
        for s in selections
        if s.kind == "custom"
    ]
    return available, custom


def strip_custom_token(tokens: list[str]) -> list[str]:
    """Drop the "custom" token from a stored weight list."""
    return [token for token in tokens if token != CUSTOM_WEIGHT_TOKEN]


CUSTOM_WEIGHT_UNIT_LABELS = {
    CustomWeightUnit.GM: "Grams (gm)",
    CustomWeightUnit.KG: "Kilograms (kg)",
    CustomWeightUnit.ML: "Milliliters (ml)",
    CustomWeightUnit.LTR: "Liters (ltr)",
    CustomWeightUnit.PIECES: "Pieces",
    CustomWeightUnit.PACK: "Pack",
    CustomWeightUnit.BOTTLE: "Bottle",
    CustomWeightUnit.BOX: "Box",
    CustomWeightUnit.OTHER: "Other",
}


def weight_label(token: str) -> str:
    """Human label for a weight token: "1.5kg" -> "1.5 kg"."""
    if token == CUSTOM_WEIGHT_TOKEN:
        return "Custom Weight/Volume"
    amount = token.rstrip("abcdefghijklmnopqrstuvwxyz")
    return f"{amount} {token[len(amount):]}"


def weight_options() -> list[dict[str, str]]:
    """Selectable weight tokens in display order, ending with "custom"."""
    return [{"value": token, "label": weight_label(token)} for token in (*MASS_WEIGHTS, *VOLUME_WEIGHTS, CUSTOM_WEIGHT_TOKEN)]


def custom_weight_unit_options() -> list[dict[str, str]]:
    return [{"value": unit.value, "label": CUSTOM_WEIGHT_UNIT_LABELS[unit]} for unit in CustomWeightUnit]
