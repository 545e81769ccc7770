"""Default interview texts for positions that do not define their own."""


def default_intro_message(position_title: str) -> str:
    return (
        f"Hello! Welcome to your interview for the {position_title} position.\n\n"
        "I'm excited to learn more about your background and experience. This interview "
        "will help us understand your qualifications and determine if you'd be a great fit "
        "for our team.\n\n"
        "Please take your time with each question and feel free to provide detailed "
        "responses. There are no wrong answers - we're simply looking to get to know you "
        "better and understand your approach to problem-solving.\n\n"
        "Let's get started!"
    )


def default_farewell_message(position_title: str) -> str:
    return (
        f"Thank you for taking the time to complete this interview for the {position_title} position!\n\n"
        "We appreciate the thoughtful responses you've provided. Our team will review your "
        "answers carefully and get back to you within the next few business days with "
        "updates on next steps.\n\n"
        "If you have any questions in the meantime, please don't hesitate to reach out to "
        "our hiring team.\n\n"
        "We look forward to potentially working with you!\n\n"
        "Best regards,\n"
        "The Hiring Team"
    )


def interview_messages(position_title: str, intro: str | None = None, farewell: str | None = None) -> dict:
    """Intro and farewell for a position, falling back to the defaults."""
    return {
        "intro": intro or default_intro_message(position_title),
        "farewell": farewell or default_farewell_message(position_title),
    }
