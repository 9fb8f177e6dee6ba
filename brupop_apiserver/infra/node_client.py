"""Typed access to BottlerocketShadow custom resources."""

from typing import Any, Dict, List

from kubernetes_asyncio import client

BOTTLEROCKET_SHADOW_GROUP = "brupop.bottlerocket.aws"
BOTTLEROCKET_SHADOW_VERSION = "v2"
BOTTLEROCKET_SHADOW_PLURAL = "bottlerocketshadows"


class K8SBottlerocketShadowClient:
    """Reads and writes the shadow resources that track each node's update state."""

    def __init__(self, api_client: client.ApiClient, namespace: str):
        self.api_client = api_client
        self.namespace = namespace
        self._custom_objects = client.CustomObjectsApi(api_client)

    def __repr__(self) -> str:
        return f"K8SBottlerocketShadowClient(namespace={self.namespace!r})"

    async def get_shadow(self, name: str) -> Dict[str, Any]:
        return await self._custom_objects.get_namespaced_custom_object(
            group=BOTTLEROCKET_SHADOW_GROUP,
            version=BOTTLEROCKET_SHADOW_VERSION,
            namespace=self.namespace,
            plural=BOTTLEROCKET_SHADOW_PLURAL,
            name=name,
        )

    async def list_shadows(self) -> List[Dict[str, Any]]:
        response = await self._custom_objects.list_namespaced_custom_object(
            group=BOTTLEROCKET_SHADOW_GROUP,
            version=BOTTLEROCKET_SHADOW_VERSION,
            namespace=self.namespace,
            plural=BOTTLEROCKET_SHADOW_PLURAL,
        )
        return response.get("items", [])
