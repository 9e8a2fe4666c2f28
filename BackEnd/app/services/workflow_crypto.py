"""
Cifrado transparente de flujos (workflows) y sus nodos de tarea.

Campos cifrados:
    - Flujo: name, status, management-category, company
    - Cada nodo: title, description, type, priority, assignedTo

Todo lo demás (ids de nodos, department, fechas, coordenadas, orden de
la lista) se copia sin cambios, de modo que
decrypt_workflow(encrypt_workflow(w)) == w.
"""

import copy
from typing import Any, Dict

from app.services.crypto_service import CryptoVault

WORKFLOW_FIELDS = ("name", "status", "management-category", "company")
NODE_FIELDS = ("title", "description", "type", "priority", "assignedTo")

# Separador del formato iv:authTag:ciphertext
LEGACY_SEPARATOR = ":"


class WorkflowCrypto:
    """
    Cifra y descifra documentos de flujo (dicts) campo a campo.

    Solo se cifran strings no vacíos; None, "" y valores no string pasan
    tal cual para que el round-trip sea exacto.
    """

    def __init__(self, vault: CryptoVault):
        self.vault = vault

    def _apply(self, document: Dict[str, Any], transform) -> Dict[str, Any]:
        result = copy.deepcopy(document)

        for field in WORKFLOW_FIELDS:
            value = result.get(field)
            if isinstance(value, str) and value:
                result[field] = transform(value)

        nodes = result.get("nodes")
        if isinstance(nodes, list):
            for node in nodes:
                if not isinstance(node, dict):
                    continue
                for field in NODE_FIELDS:
                    value = node.get(field)
                    if isinstance(value, str) and value:
                        node[field] = transform(value)

        return result

    def encrypt_workflow(self, document: Dict[str, Any]) -> Dict[str, Any]:
        return self._apply(document, self.vault.encrypt)

    def decrypt_workflow(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Inverso de encrypt_workflow; sobre texto plano es la identidad."""
        return self._apply(document, self.vault.decrypt)

    @staticmethod
    def appears_encrypted(document: Dict[str, Any]) -> bool:
        """
        Heurística legada: el nombre contiene el separador ":".

        Solo la usa la migración para registros sin marca field_state. Puede
        confundir un nombre en claro que contenga ":" con uno cifrado.
        """
        name = document.get("name")
        return isinstance(name, str) and LEGACY_SEPARATOR in name
