"""
Erreurs métier du service de remplissage de formulaires
"""
from typing import Optional


class FormFillError(Exception):
    """Erreur de base : tout ce qui est levé par le pipeline formMap → mappedFields."""


class ValidationError(FormFillError):
    """Champs obligatoires absents ou corps de requête invalide (→ HTTP 400)."""

    def __init__(self, message: str = "Missing required fields", details: Optional[list] = None):
        super().__init__(message)
        self.details = details


class GatewayError(FormFillError):
    """
    L'appel au fournisseur de complétion a échoué.

    kind ∈ timeout | network | http_status | auth | refused | empty_response | provider
    """

    def __init__(self, message: str, kind: str = "provider", status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class DecodeError(FormFillError):
    """La réponse du modèle ne respecte pas le schéma attendu."""
