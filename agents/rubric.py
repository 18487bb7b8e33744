from typing import Optional

from google.genai import types

from utils.encoder import EncodedFile

SYSTEM_INSTRUCTION = """You are an expert consultant in "Competency-Based Assessment" (素養導向評量) and Item Design (試題設計) for Junior High School Social Studies in Taiwan.
Your task is to analyze assessment materials provided by teachers.

You must evaluate them against strict pedagogical principles (based on experts like Chen Po-Hsi and NAER guidelines) and perform a detailed content review.

**Core Principles for Evaluation:**

1. **Real Context (真實情境):**
   - Does the question use a realistic scenario?
   - Is the context *necessary* to answer the question?
   - Avoid "fake contexts" where the context is irrelevant to the answer.

2. **Problem Solving (問題解決):**
   - Does the student need to apply knowledge to solve a specific problem?
   - Assesses "Learning Performance" + "Learning Content".

3. **Cross-Discipline/Core Competencies (跨領域/核心素養):**
   - Involves reading comprehension, chart analysis, or critical thinking.

4. **Technical Quality (一般命題原則):**
   - **Multiple Choice:** Clear stem, logical option order, similar length/grammar for options. Avoid "All of the above/None of the above". Options should be mutually exclusive. Avoid specific determinants (hints).
   - **True/False:** Avoid double negatives. Should test a single concept per item.
   - **Matching:** Items should be homogeneous. Reaction items > Problem items (to reduce guessing).
   - **Item Sets:** 3-5 sub-questions per stem. Answers should be independent (one answer shouldn't depend on another).

5. **Editorial & Formatting Check (文句與格式檢核):**
   - **Question Numbers:** Check if numbers are sequential, missing, or duplicated.
   - **Options:** Check if options (A, B, C, D) are missing, mislabeled, or inconsistent.
   - **Language Flow:** Check for incomplete sentences, awkward phrasing, or grammatical errors.
   - **Typos (錯別字):** Identify any incorrect Chinese characters or typos.
   - *Strictly report any findings in this category.*

6. **Content Review (內容審查 - 善良風俗/邏輯/價值觀):**
   - **Public Morals (善良風俗):** Ensure content is appropriate for students. No violence, explicit content, controversial political propaganda without academic context, or offensive material.
   - **Logical Correctness (邏輯正確性):** Check if the question premise leads logically to the answer. Are there logical fallacies? Is the cause-and-effect relationship valid?
   - **Correct Values (價值觀正確性):** Ensure the content promotes correct societal values (e.g., gender equality, human rights, environmental protection). Avoid stereotypes (gender, race, indigenous people), discrimination, or incorrect legal interpretations.

**Instructions for Analysis:**
- If a PDF/Image is provided, analyze the *overall quality* of the questions within it.
- **CRITICAL:** In the 'editorialQuality' and 'contentReview' sections, you MUST explicitly state any violations found.
- **Specific Improvements:** You MUST populate the 'questionImprovements' list. Identify specific questions (e.g., "第 3 題", "Q5") that violate principles or contain errors. Describe the specific issue and provide a concrete suggestion for how to rewrite or fix it.
- Providing a "Score" should reflect the overall adherence to the principles above.

**Tone:** Professional, constructive, yet critical of common pitfalls.
**Output Language:** Traditional Chinese (繁體中文)."""

CRITERIA_KEYS = [
    "realContext",
    "problemSolving",
    "interdisciplinary",
    "technicalQuality",
    "editorialQuality",
    "contentReview",
]

STATUS_VALUES = ["excellent", "good", "warning", "critical"]


def build_user_prompt(free_text: str, attachment: Optional[EncodedFile] = None) -> str:
    """
    Text part of the request. The attachment itself is sent as a separate
    inline_data part; only its role is described here.
    """
    sections = ["Please analyze the following social studies assessment material."]

    if free_text:
        sections.append(f"Teacher's Note/Question Text:\n{free_text}")

    if attachment is not None:
        file_desc = "A PDF assessment file" if attachment.is_pdf else "An image"
        sections.append(
            f"{file_desc} is attached. Please analyze the content within this file, "
            "focusing on competency-based principles, editorial accuracy, and content "
            "ethics (logic, values, morals). Identify specific questions that need improvement."
        )
    else:
        sections.append("No file provided.")

    return "\n\n".join(sections)


def _string_list(description: str) -> types.Schema:
    return types.Schema(
        type=types.Type.ARRAY,
        items=types.Schema(type=types.Type.STRING),
        description=description,
    )


def _criterion_schema() -> types.Schema:
    return types.Schema(
        type=types.Type.OBJECT,
        properties={
            "score": types.Schema(type=types.Type.INTEGER, description="0 to 100"),
            "title": types.Schema(type=types.Type.STRING),
            "description": types.Schema(type=types.Type.STRING),
            "status": types.Schema(type=types.Type.STRING, enum=STATUS_VALUES),
        },
        required=["score", "title", "description", "status"],
    )


def build_response_schema() -> types.Schema:
    """Strict output shape sent with every request (mirrors agents.models.AnalysisResult)."""
    question_fix = types.Schema(
        type=types.Type.OBJECT,
        properties={
            "questionId": types.Schema(
                type=types.Type.STRING,
                description="The identifier of the question (e.g., '第 5 題', 'Q12')",
            ),
            "issue": types.Schema(
                type=types.Type.STRING,
                description="The specific problem identified with this question",
            ),
            "suggestion": types.Schema(
                type=types.Type.STRING,
                description="Concrete advice on how to fix this specific question",
            ),
        },
        required=["questionId", "issue", "suggestion"],
    )

    return types.Schema(
        type=types.Type.OBJECT,
        properties={
            "overallScore": types.Schema(
                type=types.Type.INTEGER,
                description="0 to 100 score of the assessment quality",
            ),
            "bloomsLevel": types.Schema(
                type=types.Type.STRING,
                description="Dominant Bloom's Taxonomy level (e.g., Analyze, Evaluate) across the questions",
            ),
            "summary": types.Schema(
                type=types.Type.STRING,
                description="A brief summary of the analysis for the provided questions/paper",
            ),
            "strengths": _string_list("List of strengths found in the assessment"),
            "weaknesses": _string_list("List of weaknesses or violations of principles"),
            "suggestions": _string_list("General suggestions for improvement"),
            "questionImprovements": types.Schema(
                type=types.Type.ARRAY,
                items=question_fix,
                description="List of specific questions that need improvement, with concrete advice",
            ),
            "criteriaBreakdown": types.Schema(
                type=types.Type.OBJECT,
                properties={key: _criterion_schema() for key in CRITERIA_KEYS},
                required=list(CRITERIA_KEYS),
            ),
        },
        required=[
            "overallScore",
            "bloomsLevel",
            "summary",
            "strengths",
            "weaknesses",
            "suggestions",
            "questionImprovements",
            "criteriaBreakdown",
        ],
    )


ANALYSIS_SCHEMA = build_response_schema()
