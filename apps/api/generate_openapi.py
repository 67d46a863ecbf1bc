from fastapi.openapi.utils import get_openapi
from apps.api.main import app
import json, pathlib

spec = get_openapi(
    title=app.title,
    version=app.version,
    description=app.description,
    routes=app.routes,
)
out = pathlib.Path("openapi.json")
out.write_text(json.dumps(spec, indent=2))
print(f"Wrote {out} ({len(spec.get('paths', {}))} paths)")
