"""Formats retrieved passages and an instruction policy into a prompt context."""

from pydantic import BaseModel

from services.retrieval.RetrievalStrategy import PASSAGE_SEPARATOR
from shared.models.document import RetrievedPassage

DEFAULT_INSTRUCTIONS = [
    "أجب على السؤال **فقط** بناءً على المعلومات المتوفرة في \"معلومات السياق\" أدناه.",
    "**لا** تستخدم أي معلومات خارجية أو معرفة سابقة.",
    "إذا كانت الإجابة غير موجودة في السياق، قل بوضوح: \"عذراً، هذه المعلومة غير متوفرة في المصادر المزودة.\"",
    "لا تسرد جميع البيانات دفعة واحدة، بل أجب على السؤال المحدد فقط.",
    "التزم باللغة التي يسأل بها المستخدم.",
]


class InstructionPolicy(BaseModel):
    """Wording of the prompt around the passages. Configuration, not logic."""

    preamble: str = "أنت مساعد خدمة عملاء متخصص ومقيد بالمحتوى المزود في سياق المحادثة فقط."
    instructions_header: str = "تعليمات صارمة:"
    instructions: list[str] = DEFAULT_INSTRUCTIONS
    context_header: str = "معلومات السياق (مقتطفات):"
    empty_context: str = "لا توجد معلومات متاحة."
    question_label: str = "السؤال:"


class ContextAssembler:
    def assemble(self, passages: list[RetrievedPassage], policy: InstructionPolicy | None = None, question: str | None = None) -> str:
        """Build the prompt context handed to the language model.

        Args:
            passages (list[RetrievedPassage]): Passages, already fitted to the token budget.
            policy (InstructionPolicy | None): Instruction wording, the Arabic default if None.
            question (str | None): Appended after the context when given.

        Returns:
            str: Policy, numbered instructions, context header, passages joined by
            the passage separator and the optional question.
        """
        policy = policy or InstructionPolicy()
        instructions = "\n".join(f"{i}. {line}" for i, line in enumerate(policy.instructions, start=1))
        context = PASSAGE_SEPARATOR.join(p.content for p in passages) if passages else policy.empty_context

        sections = [
            policy.preamble,
            f"{policy.instructions_header}\n{instructions}",
            f"{policy.context_header}\n{context}",
        ]
        if question:
            sections.append(f"{policy.question_label} {question}")
        return "\n\n".join(sections)
