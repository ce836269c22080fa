"""Static starter content for new files, used when the model cannot draft one."""

import os

_TEMPLATES: dict[str, str] = {
    ".py": '"""{stem}."""\n\n\ndef main() -> None:\n    pass\n\n\nif __name__ == "__main__":\n    main()\n',
    ".pyi": "",
    ".md": "# {title}\n\n",
    ".txt": "",
    ".json": "{{}}\n",
    ".toml": "",
    ".yaml": "",
    ".yml": "",
    ".ts": "export {{}};\n",
    ".tsx": "export default function {component}() {{\n  return null;\n}}\n",
    ".js": "module.exports = {{}};\n",
    ".jsx": "export default function {component}() {{\n  return null;\n}}\n",
    ".html": "<!DOCTYPE html>\n<html>\n  <head>\n    <title>{title}</title>\n  </head>\n  <body>\n  </body>\n</html>\n",
    ".css": "",
    ".sh": "#!/usr/bin/env bash\nset -euo pipefail\n",
}


def template_for(path: str) -> str:
    """Return starter content for *path* based on its extension."""
    stem, ext = os.path.splitext(os.path.basename(path))
    template = _TEMPLATES.get(ext.lower(), "")
    words = [w for w in stem.replace("-", " ").replace("_", " ").split() if w]
    return template.format(
        stem=stem,
        title=" ".join(w.capitalize() for w in words) or stem,
        component="".join(w.capitalize() for w in words) or "Component",
    )
