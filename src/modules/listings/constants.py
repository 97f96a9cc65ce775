"""Listing descriptive choices.

Status values live in ``modules.workflow.constants.ListingStatus``.
"""

from django.db import models


class AnimalGender(models.TextChoices):
    MALE = "MALE", "Male"
    FEMALE = "FEMALE", "Female"


class AnimalCategory(models.TextChoices):
    DOG = "DOG", "Dogs"
    CAT = "CAT", "Cats"
    BIRD = "BIRD", "Birds"
    RABBIT = "RABBIT", "Rabbits"
    OTHER = "OTHER", "Other pets"
