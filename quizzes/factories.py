"""
Builders for test data shared by the app test modules.
"""
from django.contrib.auth.models import User

from courses.models import Course, Enrollment, Lesson, Profile
from .models import Question, QuestionType, Quiz

TWO_FIVE_POINT_QUESTIONS = [
    (QuestionType.MULTIPLE_CHOICE, 'A', 5),
    (QuestionType.MULTIPLE_CHOICE, 'B', 5),
]


def make_user(username, role=Profile.ROLE_STUDENT):
    user = User.objects.create_user(username=username, email=f"{username}@example.com", password="pass")
    Profile.objects.create(user=user, role=role)
    return user


def make_course(title="Python Basics", lesson_count=1, instructor=None):
    course = Course.objects.create(title=title, instructor=instructor)
    lessons = [
        Lesson.objects.create(course=course, title=f"Lesson {i + 1}", order=i, is_published=True)
        for i in range(lesson_count)
    ]
    return course, lessons


def make_quiz(course, lesson=None, questions=TWO_FIVE_POINT_QUESTIONS, **options):
    options.setdefault('passing_score', 70)
    quiz = Quiz.objects.create(course=course, lesson=lesson, title=f"{course.title} quiz", **options)
    for order, (question_type, correct_answer, points) in enumerate(questions):
        Question.objects.create(
            quiz=quiz,
            question_type=question_type,
            text=f"Question {order + 1}",
            options=['A', 'B', 'C', 'D'],
            correct_answer=correct_answer,
            points=points,
            explanation=f"Explanation {order + 1}",
            order=order,
        )
    return quiz


def enroll(user, course):
    return Enrollment.objects.create(student=user, course=course)


def correct_answers(quiz):
    return {
        str(q.id): q.correct_answer
        for q in quiz.questions.all()
        if q.question_type != QuestionType.ESSAY
    }
