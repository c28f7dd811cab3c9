from plaid import Configuration, ApiClient, Environment
from plaid.api import plaid_api

from config.settings import PLAID_CLIENT_ID, PLAID_ENV, PLAID_SECRET

_ENV_MAP = {
    "sandbox": Environment.Sandbox,
    "production": Environment.Production,
}
_plaid_host = _ENV_MAP.get(PLAID_ENV, Environment.Sandbox)


configuration = Configuration(
    host=_plaid_host,
    api_key={
        "clientId": PLAID_CLIENT_ID,
        "secret": PLAID_SECRET,
    },
)

api_client = ApiClient(configuration)
client = plaid_api.PlaidApi(api_client)
