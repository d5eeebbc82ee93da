import re

from pydantic import BaseModel, ConfigDict

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class Prompt(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    version: str
    description: str
    inputs: dict[str, str]
    template: str

    def render(self, **values: object) -> str:
        """Fill ``{{ name }}`` placeholders.

        Raises:
            KeyError: If a declared input has no value.
        """
        missing = [key for key in self.inputs if key not in values]
        if missing:
            raise KeyError(
                f"Prompt '{self.name}' v{self.version} missing inputs: {', '.join(missing)}"
            )
        return _PLACEHOLDER.sub(
            lambda m: str(values[m.group(1)]) if m.group(1) in values else m.group(0),
            self.template,
        )
