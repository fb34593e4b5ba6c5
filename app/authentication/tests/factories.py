"""
Factory Boy factories for authentication models.

Usage:
    from authentication.tests.factories import UserFactory, EmployerFactory

    # Candidate with default values
    user = UserFactory()

    # Employer
    employer = EmployerFactory()

    # Inactive user (deactivated)
    user = UserFactory(is_active=False)
"""

import factory

from authentication.models import User, UserRole


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User model.

    Creates active candidates by default. Goes through
    UserManager.create_user() so passwords are hashed.
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    full_name = factory.Faker("name")
    role = UserRole.CANDIDATE
    is_active = True
    is_staff = False

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to use UserManager.create_user()."""
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )


class EmployerFactory(UserFactory):
    """User with the employer role."""

    email = factory.Sequence(lambda n: f"employer{n}@example.com")
    role = UserRole.EMPLOYER
