"""
ナレーション生成プロンプト

NarrationGenerator が LLM に送信するプロンプトのテンプレートを定義する。
デモ動画の字幕は英語で生成する。
"""

NARRATION_PROMPT_TEMPLATE = """\
You are generating concise, professional narration for a product demo video.

Demo: {demo_name}
Current Step: {current_step}
{extra_context}
Generate a single, engaging sentence (max 15 words) that narrates what's happening in this step of the demo.
The narration should be:
- Professional and conversational
- Clear and concise
- Focused on user value
- Present tense

Return only the narration text, no quotes or additional formatting."""

PAGE_TITLE_LINE = "Page Title: {page_title}\n"

PREVIOUS_STEPS_LINE = "Previous Steps: {previous_steps}\n"
