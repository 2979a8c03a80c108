from lexgate.services.ai.common.router import ProviderRouter, get_router


def get_ai_router() -> ProviderRouter:
    return get_router()
