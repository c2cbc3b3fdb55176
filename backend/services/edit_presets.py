from dataclasses import dataclass


@dataclass(frozen=True)
class EditPreset:
    """Fixed pair of edit instructions plus the label shown with the result"""

    name: str
    filter_prompt: str
    accessory_prompt: str
    accessory_label: str

    @property
    def instruction(self) -> str:
        return f"{self.filter_prompt} {self.accessory_prompt}"


PUF_CHAIN_PRESET = EditPreset(
    name="puf_chain",
    filter_prompt=(
        "Apply a cool, black and white security camera filter "
        "with a slight fish-eye lens effect to the image."
    ),
    accessory_prompt=(
        "Overlay a stylish chain with the letters 'PUF' on it. "
        "The chain should be appropriately placed on the main subject of the image, "
        "whether it's a person, animal, or object."
    ),
    accessory_label="PUF Chain",
)

DEFAULT_PRESET_NAME = PUF_CHAIN_PRESET.name

PRESETS: dict[str, EditPreset] = {PUF_CHAIN_PRESET.name: PUF_CHAIN_PRESET}


def get_preset(name: str | None = None) -> EditPreset:
    """Return preset by name; None means the default. Unknown names raise KeyError."""
    key = (name or DEFAULT_PRESET_NAME).strip().lower()
    try:
        return PRESETS[key]
    except KeyError:
        raise KeyError(f"Unknown preset: {name}") from None
