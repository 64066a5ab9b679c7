from abc import abstractmethod
from typing import Any
import json

import httpx
from shared.clients.rag.models.SearchHit import SearchHit
from shared.clients.ClientInterface import ClientInterface

from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.vector_size = int(self.get_config_val("VECTOR_SIZE", default=1536, val_type="number"))

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_points(self, points: list[dict[str, Any]]) -> None:
        """
        Validates points before they are written to the backend.

        Args:
            points (list[dict[str, Any]]): Points with "id", "vector" and "payload".

        Raises:
            ValueError: If a point has no owner_id or its vector does not match the
                        configured vector size.
        """
        for point in points:
            if not point.get("payload", {}).get("owner_id"):
                raise ValueError(f"Point {point.get('id')} has no owner_id (security invariant).")
            vector = point.get("vector") or []
            if len(vector) != self.vector_size:
                raise ValueError(
                    f"Point {point.get('id')} has {len(vector)} dimensions, index expects {self.vector_size}."
                )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """
        Returns the endpoint path for similarity search requests.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/search")
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """
        Returns the endpoint path for points upsert requests.

        Returns:
            str: The endpoint path for points requests (e.g. "/points")
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        """
        Returns the endpoint path for deleting points by filter.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/delete")
        """
        pass

    @abstractmethod
    def _get_endpoint_check_collection_existence(self) -> str:
        """
        Returns the endpoint path for collection existence check requests.

        Returns:
            str: The endpoint path for collection existence check requests (e.g. "/existence_check")
        """
        pass

    @abstractmethod
    def _get_endpoint_create_collection(self) -> str:
        """
        Returns the endpoint path for create collection requests.

        Returns:
            str: The endpoint path for create collection requests (e.g. "/create_collection")
        """
        pass

    @abstractmethod
    def _get_endpoint_count(self) -> str:
        """Returns the endpoint path for counting points matching a filter.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/count")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_owner_filter(self, owner_id: str, document_name: str | None = None, content_hash: str | None = None) -> dict:
        """
        Builds the backend-specific filter selecting an owner's points, optionally
        narrowed to one document and/or one content hash.

        Args:
            owner_id (str): Owner whose points are selected. Never empty.
            document_name (str | None): Restrict to this document.
            content_hash (str | None): Restrict to points carrying this content hash.

        Returns:
            dict: The filter.

        Raises:
            ValueError: If owner_id is empty.
        """
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], filter: dict, limit: int, score_threshold: float) -> dict:
        """Builds the backend-specific request payload for a similarity search.

        Args:
            vector (list[float]): The query vector.
            filter (dict): Filter applied before ranking.
            limit (int): Maximum number of hits.
            score_threshold (float): Hits scoring below are dropped by the backend.

        Returns:
            dict: The payload for the search request.
        """
        pass

    @abstractmethod
    def get_count_payload(self, filter: dict) -> dict:
        """Builds the backend-specific request payload for a point count.

        Args:
            filter (dict): Filter to apply before counting.

        Returns:
            dict: The payload for the count request.
        """
        pass

    @abstractmethod
    def get_delete_payload(self, filter: dict) -> dict:
        """
        Builds the backend-specific request payload for a filter-based delete.

        Args:
            filter (dict): The filter that identifies which points to delete.

        Returns:
            dict: The payload for the delete request.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        """
        Extracts the ranked hits from a raw search response.

        Args:
            raw_response (dict): The raw JSON response from the search endpoint.

        Returns:
            list[SearchHit]: Hits ordered by descending score.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        """Check if a collection exists in the rag backend.

        Returns:
            bool: True if the collection exists, False otherwise.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_check_collection_existence())
        return bool(resp.json().get("result", {}).get("exists"))

    async def do_create_collection(self, distance: str = "Cosine") -> httpx.Response:
        """Create a collection in the rag backend sized to the configured vector size.

        Args:
            distance (str): The distance metric for the vectors.

        Returns:
            httpx.Response: The response from the create collection request.
        """
        return await self.do_request(
            method="PUT",
            json={
                "vectors": {
                    "size": self.vector_size,
                    "distance": distance}},
            endpoint=self._get_endpoint_create_collection(),
            raise_on_error=True)

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> httpx.Response:
        """Upsert points into the rag backend collection.
        Inserts new points or replaces existing ones if a point with the same ID already exists.

        Args:
            points (list[dict[str, Any]]): The list of points to upsert.

        Returns:
            httpx.Response: The response from the upsert request.

        Raises:
            ValueError: If a point violates validate_points().
            Exception: If the backend rejects the upsert.
        """
        self.validate_points(points)
        return await self.do_request(
            method="PUT",
            content=json.dumps({"points": points}),
            endpoint=self._get_endpoint_points(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True)

    async def do_delete_points_by_filter(self, filter: dict) -> None:
        """Deletes all points matching the given filter from the RAG backend.

        Args:
            filter (dict): The filter that identifies which points to delete.
                           Must always be built by get_owner_filter() to enforce access isolation.
        """
        await self.do_request(
            method="POST",
            content=json.dumps(self.get_delete_payload(filter)),
            endpoint=self._get_endpoint_delete_points(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )

    async def do_count(self, filter: dict) -> int:
        """Count the total number of points matching the given filter.

        Args:
            filter (dict): Filter for the count request.

        Returns:
            int: Total number of matching points.
        """
        resp = await self.do_request(
            method="POST",
            content=json.dumps(self.get_count_payload(filter)),
            endpoint=self._get_endpoint_count(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        return resp.json().get("result", {}).get("count", 0)

    async def do_search(self, vector: list[float], owner_id: str, limit: int, score_threshold: float) -> list[SearchHit]:
        """Return the owner's chunks closest to the given vector.

        Args:
            vector (list[float]): The query vector.
            owner_id (str): Only this owner's points are considered.
            limit (int): Maximum number of hits.
            score_threshold (float): Minimum similarity of a hit.

        Returns:
            list[SearchHit]: Hits ordered by descending score.
        """
        payload = self.get_search_payload(
            vector=vector,
            filter=self.get_owner_filter(owner_id),
            limit=limit,
            score_threshold=score_threshold,
        )
        resp = await self.do_request(
            method="POST",
            content=json.dumps(payload),
            endpoint=self._get_endpoint_search(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        hits = self.extract_search_hits(resp.json())

        # the backend filter is authoritative, this guards against a misconfigured one
        foreign = [hit.id for hit in hits if hit.payload.owner_id != owner_id]
        if foreign:
            self.logging.error("Search returned %d point(s) of another owner; dropping them.", len(foreign))
        return [hit for hit in hits if hit.payload.owner_id == owner_id]
