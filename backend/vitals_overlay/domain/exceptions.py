"""
Exceptions métier du domaine Vitals Overlay.

Levées par les flux et les clients Stromno/Dexcom, traduites en codes
HTTP par api/app.py. Le champ `code` est repris tel quel dans le corps
JSON des erreurs (clé "error").

TAXONOMIE:
- InvalidInputError: URL ou identifiants mal formés, rejetés avant tout appel réseau
- AuthenticationError: le fournisseur a refusé les identifiants
- UpstreamError: appel réussi côté transport mais réponse inattendue
- TransportError: coupure, timeout ou erreur réseau
- ConnectionSupersededError: connect() remplacé par une demande plus récente

UTILISATION:
    from vitals_overlay.domain.exceptions import InvalidInputError

    if widget_id is None:
        raise InvalidInputError(field="widget_url", reason="Aucun UUID trouvé")
"""

from typing import Optional


class DomainError(Exception):
    """Erreur de base: message lisible, code stable, détails sérialisables."""

    def __init__(
        self,
        message: str,
        code: str = "DOMAIN_ERROR",
        details: Optional[dict] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# ENTRÉES INVALIDES
# =============================================================================

class InvalidInputError(DomainError):
    """
    Paramètre de connexion mal formé.

    Lancée avant tout appel réseau (URL de widget sans UUID,
    identifiants vides, région inconnue).
    """

    def __init__(self, field: str, reason: str):
        super().__init__(
            message=f"Valeur invalide pour '{field}': {reason}",
            code="INVALID_INPUT",
            details={"field": field}
        )
        self.field = field
        self.reason = reason


# =============================================================================
# AUTHENTIFICATION
# =============================================================================

class AuthenticationError(DomainError):
    """
    Le fournisseur a refusé les identifiants pendant la poignée de main.

    Le message du fournisseur est joint pour être affiché à l'utilisateur.
    """

    def __init__(self, service: str, upstream_message: str = ""):
        message = f"Authentification refusée par '{service}'"
        if upstream_message:
            message += f": {upstream_message}"

        super().__init__(
            message=message,
            code="AUTH_ERROR",
            details={"service": service}
        )
        self.service = service
        self.upstream_message = upstream_message


# =============================================================================
# FOURNISSEUR / TRANSPORT
# =============================================================================

class UpstreamError(DomainError):
    """
    Réponse inattendue ou invalide d'un fournisseur.

    L'appel a abouti au niveau transport mais le contenu n'est pas exploitable.
    """

    def __init__(
        self,
        service: str,
        reason: str,
        code: str = "UPSTREAM_ERROR",
        status_code: Optional[int] = None,
    ):
        super().__init__(
            message=f"Réponse invalide de '{service}': {reason}",
            code=code,
            details={"service": service, "status_code": status_code}
        )
        self.service = service
        self.reason = reason
        self.status_code = status_code


class SessionExpiredError(UpstreamError):
    """
    La session fournisseur n'est plus valide.

    Le flux glycémique refait la poignée de main et relance la lecture une fois.
    """

    def __init__(self, service: str, reason: str = "Session invalide ou expirée"):
        super().__init__(
            service=service,
            reason=reason,
            code="SESSION_EXPIRED",
        )


class TransportError(DomainError):
    """
    Erreur réseau (coupure, timeout, hôte injoignable).

    Après une connexion réussie, ces erreurs sont gérées en interne
    par la reconnexion ou le polling.
    """

    def __init__(self, service: str, reason: str):
        super().__init__(
            message=f"Erreur réseau avec '{service}': {reason}",
            code="TRANSPORT_ERROR",
            details={"service": service}
        )
        self.service = service
        self.reason = reason


# =============================================================================
# CYCLE DE VIE
# =============================================================================

class ConnectionSupersededError(DomainError):
    """
    Un connect() a été remplacé par un connect() ou disconnect() plus récent
    avant d'aboutir. Ses paramètres ne sont pas sauvegardés.
    """

    def __init__(self, feed: str):
        super().__init__(
            message=f"Connexion du flux '{feed}' annulée par une demande plus récente",
            code="CONNECT_SUPERSEDED",
            details={"feed": feed}
        )
        self.feed = feed
