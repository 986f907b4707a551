import os, json, logging, traceback
import azure.functions as func

from config import ENV_NAMES, load_settings
from services.errors import ConfigError

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

# .env is for local runs only; the Functions host provides app settings itself
IS_AZURE = bool(os.getenv("WEBSITE_SITE_NAME")) or os.getenv("FUNCTIONS_WORKER_RUNTIME") == "python"
if not IS_AZURE:
    from dotenv import load_dotenv
    load_dotenv()

logger = logging.getLogger(__name__)

# blueprint name -> module that defines `bp`
BLUEPRINTS = {
    "signup": "routes.signup",
    "employees": "routes.employees",
    "company": "routes.company",
}

REGISTERED: list[str] = []
FAILURES: dict[str, dict] = {}


def _try(modpath: str, name: str):
    try:
        mod = __import__(modpath, fromlist=["bp"])
        app.register_functions(getattr(mod, "bp"))
        REGISTERED.append(name)
    except Exception as e:
        logger.exception(f"Failed to register blueprint {name} ({modpath})")
        FAILURES[name] = {"error": repr(e), "trace": traceback.format_exc()}


for _name, _modpath in BLUEPRINTS.items():
    _try(_modpath, _name)


def diagnostics(environ=None) -> dict:
    """
    Registration results plus which settings are present. Values are never
    included, only whether each environment variable is set.
    """
    report = {"registered": list(REGISTERED), "failures": dict(FAILURES)}
    try:
        settings = load_settings(environ)
    except ConfigError as e:
        report["config_error"] = e.message
        return report
    report["settings"] = {env: bool(getattr(settings, name)) for name, env in ENV_NAMES.items()}
    return report


@app.function_name(name="Ping")
@app.route(route="ping", methods=["GET"])
def ping(req: func.HttpRequest) -> func.HttpResponse:
    return func.HttpResponse("ok", mimetype="text/plain")


@app.function_name(name="Diag")
@app.route(route="_diag", methods=["GET"])
def diag(req: func.HttpRequest) -> func.HttpResponse:
    return func.HttpResponse(json.dumps(diagnostics()), mimetype="application/json")
