import base64
import copy
import json
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from agents.analyzer import AnalysisAgent, parse_analysis, strip_code_fences
from agents.rubric import CRITERIA_KEYS, SYSTEM_INSTRUCTION
from utils.encoder import encode_bytes
from utils.errors import BackendError, ResponseFormatError


def sample_report(overall_score=72):
    criterion = {
        "score": 70,
        "title": "情境運用",
        "description": "情境與作答有關。",
        "status": "good",
    }
    return {
        "overallScore": overall_score,
        "bloomsLevel": "Analyze",
        "summary": "整體題目具備素養導向精神。",
        "strengths": ["情境真實"],
        "weaknesses": ["選項長度不一"],
        "suggestions": ["統一選項長度"],
        "questionImprovements": [
            {"questionId": "Q5", "issue": "選項重疊", "suggestion": "改寫選項 C"}
        ],
        "criteriaBreakdown": {key: dict(criterion) for key in CRITERIA_KEYS},
    }


def mock_client(text):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(text=text)
    )
    return client


class TestStripCodeFences(unittest.TestCase):
    def test_removes_json_fence(self):
        self.assertEqual(strip_code_fences('```json\n{"a": 1}\n```'), '{"a": 1}')

    def test_idempotent_on_clean_text(self):
        clean = json.dumps(sample_report())
        self.assertEqual(strip_code_fences(clean), clean)
        self.assertEqual(strip_code_fences(strip_code_fences(clean)), clean)

    def test_uppercase_fence_label_is_not_a_fence(self):
        self.assertEqual(strip_code_fences("```JSON {}```"), "JSON {}")

    def test_fenced_and_bare_parse_equal(self):
        bare = json.dumps(sample_report(), ensure_ascii=False)
        fenced = f"```json {bare} ```"
        self.assertEqual(parse_analysis(fenced), parse_analysis(bare))


class TestParseAnalysis(unittest.TestCase):
    def test_valid_report(self):
        result = parse_analysis(json.dumps(sample_report()))
        self.assertEqual(result.overall_score, 72)
        self.assertEqual(result.blooms_level, "Analyze")
        self.assertEqual(result.question_fixes[0].question_id, "Q5")
        self.assertEqual(result.criteria.content_review.status, "good")

    def test_empty_text_raises(self):
        for text in (None, "", "   "):
            with self.assertRaises(ResponseFormatError):
                parse_analysis(text)

    def test_invalid_json_raises(self):
        with self.assertRaises(ResponseFormatError):
            parse_analysis("{not json")

    def test_non_object_json_raises(self):
        with self.assertRaises(ResponseFormatError):
            parse_analysis("[1, 2, 3]")

    def test_missing_criterion_raises(self):
        report = sample_report()
        del report["criteriaBreakdown"]["editorialQuality"]
        with self.assertRaises(ResponseFormatError):
            parse_analysis(json.dumps(report))

    def test_missing_question_list_raises(self):
        report = sample_report()
        del report["questionImprovements"]
        with self.assertRaises(ResponseFormatError):
            parse_analysis(json.dumps(report))

    def test_empty_question_list_allowed(self):
        report = sample_report()
        report["questionImprovements"] = []
        self.assertEqual(parse_analysis(json.dumps(report)).question_fixes, [])

    def test_score_out_of_range_raises(self):
        report = sample_report(overall_score=130)
        with self.assertRaises(ResponseFormatError):
            parse_analysis(json.dumps(report))

    def test_unknown_status_raises(self):
        report = sample_report()
        report["criteriaBreakdown"]["realContext"]["status"] = "fine"
        with self.assertRaises(ResponseFormatError):
            parse_analysis(json.dumps(report))

    def test_float_scores_rounded(self):
        report = sample_report(overall_score=71.6)
        report["criteriaBreakdown"]["problemSolving"]["score"] = 88.0
        result = parse_analysis(json.dumps(report))
        self.assertEqual(result.overall_score, 72)
        self.assertEqual(result.criteria.problem_solving.score, 88)

    def test_non_finite_scores_raise(self):
        for literal in ("Infinity", "-Infinity", "NaN", "1e400"):
            text = json.dumps(sample_report(overall_score=0)).replace(
                '"overallScore": 0', f'"overallScore": {literal}'
            )
            with self.subTest(literal=literal):
                with self.assertRaises(ResponseFormatError):
                    parse_analysis(text)

    def test_non_finite_criterion_score_raises(self):
        report = sample_report()
        report["criteriaBreakdown"]["contentReview"]["score"] = float("inf")
        with self.assertRaises(ResponseFormatError):
            parse_analysis(json.dumps(report))

    def test_status_independent_of_score(self):
        report = sample_report()
        report["criteriaBreakdown"]["technicalQuality"].update(score=5, status="excellent")
        result = parse_analysis(json.dumps(report))
        self.assertEqual(result.criteria.technical_quality.score, 5)
        self.assertEqual(result.criteria.technical_quality.status, "excellent")


class TestAnalysisAgent(unittest.IsolatedAsyncioTestCase):
    async def test_text_only_request(self):
        client = mock_client(json.dumps(sample_report(), ensure_ascii=False))
        agent = AnalysisAgent(client, model="gemini-test")

        result = await agent.analyze("請問...")

        self.assertEqual(result.overall_score, 72)
        dumped = result.model_dump(by_alias=True)["criteriaBreakdown"]
        self.assertEqual(sorted(dumped), sorted(CRITERIA_KEYS))

        kwargs = client.aio.models.generate_content.await_args.kwargs
        self.assertEqual(kwargs["model"], "gemini-test")
        parts = kwargs["contents"][0].parts
        self.assertEqual(len(parts), 1)
        self.assertIsNone(parts[0].inline_data)
        self.assertIn("請問...", parts[0].text)
        self.assertIn("No file provided.", parts[0].text)

        config = kwargs["config"]
        self.assertEqual(config.temperature, 0.2)
        self.assertEqual(config.response_mime_type, "application/json")
        self.assertIsNotNone(config.system_instruction)
        self.assertIn("Traditional Chinese", SYSTEM_INSTRUCTION)
        self.assertIn("criteriaBreakdown", config.response_schema.required)

    async def test_attachment_part_precedes_text(self):
        raw = bytes(range(256)) * 200  # ~50KB
        attachment = encode_bytes(raw, "image/png", "paper.png")
        client = mock_client(json.dumps(sample_report()))
        agent = AnalysisAgent(client)

        await agent.analyze("", attachment)

        parts = client.aio.models.generate_content.await_args.kwargs["contents"][0].parts
        self.assertEqual(len(parts), 2)
        self.assertEqual(parts[0].inline_data.mime_type, "image/png")
        self.assertEqual(parts[0].inline_data.data, raw)
        self.assertEqual(base64.b64decode(attachment.data), raw)
        self.assertIn("An image is attached", parts[1].text)
        self.assertNotIn("Teacher's Note", parts[1].text)

    async def test_pdf_attachment_described_as_pdf(self):
        attachment = encode_bytes(b"%PDF-1.4 test", "application/pdf", "exam.pdf")
        client = mock_client(json.dumps(sample_report()))

        await AnalysisAgent(client).analyze("第 3 題", attachment)

        parts = client.aio.models.generate_content.await_args.kwargs["contents"][0].parts
        self.assertEqual(parts[0].inline_data.mime_type, "application/pdf")
        self.assertIn("A PDF assessment file is attached", parts[1].text)
        self.assertIn("第 3 題", parts[1].text)

    async def test_fenced_response_parsed(self):
        text = "```json\n" + json.dumps(sample_report(overall_score=55)) + "\n```"
        result = await AnalysisAgent(mock_client(text)).analyze("Q1")
        self.assertEqual(result.overall_score, 55)

    async def test_empty_response_raises_format_error(self):
        agent = AnalysisAgent(mock_client(None))
        with self.assertRaises(ResponseFormatError):
            await agent.analyze("Q1")

    async def test_infinite_score_raises_format_error(self):
        text = json.dumps(sample_report(overall_score=float("inf")))
        with self.assertRaises(ResponseFormatError):
            await AnalysisAgent(mock_client(text)).analyze("Q1")

    async def test_backend_failure_raises_backend_error(self):
        client = MagicMock()
        failure = RuntimeError("429 RESOURCE_EXHAUSTED")
        client.aio.models.generate_content = AsyncMock(side_effect=failure)

        with self.assertRaises(BackendError) as ctx:
            await AnalysisAgent(client).analyze("Q1")

        self.assertIs(ctx.exception.__cause__, failure)
        self.assertEqual(client.aio.models.generate_content.await_count, 1)

    async def test_identical_calls_are_not_cached(self):
        client = mock_client(json.dumps(sample_report()))
        agent = AnalysisAgent(client)

        first = await agent.analyze("Q1")
        second = await agent.analyze("Q1")

        self.assertEqual(client.aio.models.generate_content.await_count, 2)
        self.assertIsNot(first, second)

    async def test_partial_report_never_returned(self):
        report = copy.deepcopy(sample_report())
        del report["summary"]
        agent = AnalysisAgent(mock_client(json.dumps(report)))
        with self.assertRaises(ResponseFormatError):
            await agent.analyze("Q1")


if __name__ == "__main__":
    unittest.main()
