import json
import unittest

import httpx

from helpers import annotation
from services.errors import ConfigurationError, DetectionError
from services.object_detector import ObjectDetectorClient

DETECTOR_URL = "https://detector.test/api/vision"


class ObjectDetectorTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.requests = []
        self.response = httpx.Response(200, json=[])
        self.http_client = httpx.AsyncClient(transport=httpx.MockTransport(self._handle))
        self.detector = ObjectDetectorClient(self.http_client, DETECTOR_URL, "secret-hash")

    async def asyncTearDown(self):
        await self.http_client.aclose()

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    async def test_posts_image_url_and_hash(self):
        await self.detector.detect("https://cdn.test/1-a.jpg")
        request = self.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), DETECTOR_URL)
        self.assertEqual(json.loads(request.content), {"imageUrl": "https://cdn.test/1-a.jpg", "hash": "secret-hash"})

    async def test_parses_annotations(self):
        self.response = httpx.Response(200, json=[{"localizedObjectAnnotations": [
            annotation("Shirt", 0.1, 0.1, 0.5, 0.6, score=0.93),
            annotation("Pants", 0.2, 0.6, 0.5, 0.95),
        ]}])
        objects = await self.detector.detect("https://cdn.test/1-a.jpg")
        self.assertEqual([o.label for o in objects], ["Shirt", "Pants"])
        self.assertEqual(objects[0].id, "/m/shirt")
        self.assertAlmostEqual(objects[0].score, 0.93)
        self.assertEqual(objects[0].bounding_polygon[2].y, 0.6)

    async def test_missing_coordinates_default_to_zero(self):
        self.response = httpx.Response(200, json=[{"localizedObjectAnnotations": [{
            "mid": "/m/hat",
            "name": "Hat",
            "score": 0.7,
            "boundingPoly": {"normalizedVertices": [{}, {"x": 0.3}, {"x": 0.3, "y": 0.2}, {"y": 0.2}]},
        }]}])
        objects = await self.detector.detect("https://cdn.test/1-a.jpg")
        polygon = objects[0].bounding_polygon
        self.assertEqual((polygon[0].x, polygon[0].y), (0.0, 0.0))
        self.assertEqual((polygon[1].x, polygon[1].y), (0.3, 0.0))

    async def test_missing_annotations_field_means_no_objects(self):
        self.response = httpx.Response(200, json=[{}])
        self.assertEqual(await self.detector.detect("https://cdn.test/1-a.jpg"), [])

    async def test_empty_array_means_no_objects(self):
        self.assertEqual(await self.detector.detect("https://cdn.test/1-a.jpg"), [])

    async def test_annotation_without_four_vertices_is_skipped(self):
        broken = annotation("Bag", 0.1, 0.1, 0.2, 0.2)
        broken["boundingPoly"]["normalizedVertices"] = broken["boundingPoly"]["normalizedVertices"][:3]
        self.response = httpx.Response(200, json=[{"localizedObjectAnnotations": [
            broken,
            annotation("Shoe", 0.6, 0.8, 0.7, 0.9),
        ]}])
        objects = await self.detector.detect("https://cdn.test/1-a.jpg")
        self.assertEqual([o.label for o in objects], ["Shoe"])

    async def test_non_success_status_raises(self):
        self.response = httpx.Response(500, text="boom")
        with self.assertRaises(DetectionError):
            await self.detector.detect("https://cdn.test/1-a.jpg")

    async def test_invalid_json_raises(self):
        self.response = httpx.Response(200, text="<html>")
        with self.assertRaises(DetectionError):
            await self.detector.detect("https://cdn.test/1-a.jpg")

    async def test_missing_hash_is_configuration_error(self):
        detector = ObjectDetectorClient(self.http_client, DETECTOR_URL, None)
        with self.assertRaises(ConfigurationError):
            await detector.detect("https://cdn.test/1-a.jpg")
        self.assertEqual(self.requests, [])


if __name__ == "__main__":
    unittest.main()
