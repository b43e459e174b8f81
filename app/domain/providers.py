from types import MappingProxyType

from app.domain.enums import ServiceCategory

SERVICE_PROVIDERS: MappingProxyType[ServiceCategory, frozenset[str]] = MappingProxyType(
    {
        ServiceCategory.TELECOM: frozenset({"TIM", "Vivo", "Claro", "Oi"}),
        ServiceCategory.UTILITIES: frozenset({"Light", "Enel", "Energisa"}),
        ServiceCategory.EDUCATION: frozenset({"YDUQS/Estácio", "Salta", "Inspira"}),
    }
)


def resolve_service_category(service_provider: str | None) -> ServiceCategory:
    """Unrecognized providers are treated as telecom."""
    if service_provider:
        for category, providers in SERVICE_PROVIDERS.items():
            if service_provider in providers:
                return category
    return ServiceCategory.TELECOM
