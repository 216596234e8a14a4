import uuid

from django.db import models
from django.utils import timezone

from education.models import Student


class StudentDocument(models.Model):
    """
    Log of every file uploaded for a student.

    Rows are only ever appended. The current document of a type is the
    newest by ``uploaded_at``. Keyed by the registration number string so
    files for students not yet enrolled are still kept.
    """
    DOCUMENT_TYPE_CHOICES = [
        ('exam-card', 'Exam Card'),
        ('fees-structure', 'Fees Structure'),
        ('fees-statement', 'Fees Statement'),
        ('fees-receipt', 'Fees Receipt'),
        ('results', 'Results'),
        ('timetable', 'Timetable'),
        ('photo', 'Photo'),
    ]
    STORAGE_METHOD_CHOICES = [
        ('remote', 'Remote bucket'),
        ('local', 'Local disk'),
    ]

    registration_number = models.CharField(max_length=50, db_index=True)
    document_type = models.CharField(max_length=30, choices=DOCUMENT_TYPE_CHOICES)
    file_url = models.CharField(max_length=1000)
    file_name = models.CharField(max_length=255)
    file_size = models.PositiveIntegerField()
    storage_method = models.CharField(max_length=10, choices=STORAGE_METHOD_CHOICES)
    uploaded_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'student_documents'
        ordering = ['-uploaded_at', '-id']
        indexes = [
            models.Index(fields=['registration_number', 'document_type'], name='documents_reg_type_idx'),
        ]

    def __str__(self):
        return f"{self.registration_number} - {self.document_type} ({self.file_name})"

    def to_dict(self):
        return {
            'id': self.id,
            'registrationNumber': self.registration_number,
            'documentType': self.document_type,
            'fileUrl': self.file_url,
            'fileName': self.file_name,
            'fileSize': self.file_size,
            'uploadedAt': self.uploaded_at.isoformat() if self.uploaded_at else None,
            'storageMethod': self.storage_method,
        }


class ExamCard(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='exam_cards')
    file_url = models.CharField(max_length=1000)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'exam_cards'
        ordering = ['-created_at']

    def __str__(self):
        return f"Exam card - {self.student.registration_number}"


class ResultRecord(models.Model):
    """Semester results published for a student"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='results')
    semester = models.CharField(max_length=50)
    result_data = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'results'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.student.registration_number} - {self.semester}"

    def to_dict(self):
        return {
            'id': str(self.id),
            'student_id': str(self.student_id),
            'semester': self.semester,
            'result_data': self.result_data,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Timetable(models.Model):
    """Class timetable for a course and semester, optionally uploaded for one student"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='timetables', null=True, blank=True)
    course = models.CharField(max_length=100)
    semester = models.CharField(max_length=50)
    timetable_url = models.CharField(max_length=1000, blank=True, null=True)
    timetable_data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'timetables'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['course', 'semester'], name='timetables_course_sem_idx'),
        ]

    def __str__(self):
        return f"{self.course} - {self.semester}"

    def to_dict(self):
        return {
            'id': str(self.id),
            'student_id': str(self.student_id) if self.student_id else None,
            'course': self.course,
            'semester': self.semester,
            'timetable_url': self.timetable_url,
            'timetable_data': self.timetable_data,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
