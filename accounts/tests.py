import json
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from education.exceptions import ForbiddenError, NotFoundError
from education.models import Student
from .models import Fee, Finance
from . import services

User = get_user_model()


class FeeServicesTestCase(TestCase):
    def setUp(self):
        """Set up test data"""
        self.student = Student.objects.create(
            registration_number="EE/014/2020",
            name="Peter Kamau",
            course="Electrical Engineering",
            level_of_study="3",
        )

    def test_fee_summary_without_record(self):
        self.assertEqual(
            services.fee_summary(self.student),
            {'fee_balance': 0, 'total_paid': 0, 'semester_fee': 0, 'session_progress': 0},
        )

    def test_fee_summary(self):
        """Test session progress is the rounded share of the semester fee paid"""
        Fee.objects.create(
            student=self.student,
            fee_balance=Decimal('18500.00'),
            total_paid=Decimal('31500.00'),
            semester_fee=Decimal('50000.00'),
        )
        summary = services.fee_summary(self.student)
        self.assertEqual(summary['fee_balance'], 18500.0)
        self.assertEqual(summary['session_progress'], 63)

    def test_exam_card_clearance(self):
        fee = Fee.objects.create(student=self.student, fee_balance=Decimal('1200.00'))

        with self.assertRaises(ForbiddenError) as ctx:
            services.check_exam_card_clearance(self.student)
        self.assertEqual(ctx.exception.as_dict()['fee_balance'], 1200.0)

        fee.fee_balance = Decimal('0.00')
        fee.save()
        services.check_exam_card_clearance(self.student)

    def test_latest_statement_url(self):
        with self.assertRaises(NotFoundError):
            services.latest_statement_url(self.student)

        services.record_statement_url(self.student, "https://files.example.com/statement-1.pdf")
        services.record_receipt_url(self.student, "https://files.example.com/receipt-1.pdf")

        self.assertEqual(services.latest_statement_url(self.student), "https://files.example.com/statement-1.pdf")
        self.assertEqual(services.latest_receipt_url(self.student), "https://files.example.com/receipt-1.pdf")
        self.assertEqual(Finance.objects.filter(student=self.student).count(), 2)


class FeeApiTestCase(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="bursar", password="bursarpass123", is_staff=True, role='accounts_officer')
        self.student = Student.objects.create(
            registration_number="EE/014/2020",
            name="Peter Kamau",
            course="Electrical Engineering",
            level_of_study="3",
        )
        self.other_student = Student.objects.create(
            registration_number="EE/015/2020",
            name="Mary Njeri",
            course="Electrical Engineering",
            level_of_study="3",
        )
        Fee.objects.create(student=self.student, fee_balance=Decimal('500.00'), total_paid=Decimal('49500.00'), semester_fee=Decimal('50000.00'))

    def login_student(self, student):
        session = self.client.session
        session['student_id'] = str(student.id)
        session.save()

    def test_student_reads_own_fees(self):
        self.login_student(self.student)
        response = self.client.get(reverse('api_student_fees', args=[self.student.id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['session_progress'], 99)

        response = self.client.get(reverse('api_student_fees', args=[self.other_student.id]))
        self.assertEqual(response.status_code, 403)

    def test_record_and_fetch_statement(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            reverse('api_fee_statement', args=[self.student.id]),
            data=json.dumps({'statement_url': 'https://files.example.com/st.pdf'}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)

        response = self.client.get(reverse('api_fee_statement', args=[self.student.id]))
        self.assertEqual(response.json(), {'statement_url': 'https://files.example.com/st.pdf'})

        response = self.client.get(reverse('api_fee_receipt', args=[self.student.id]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], 'No fee receipt found')

    def test_student_cannot_record_statement(self):
        self.login_student(self.student)
        response = self.client.post(
            reverse('api_fee_statement', args=[self.student.id]),
            data=json.dumps({'statement_url': 'https://files.example.com/st.pdf'}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 401)
        self.assertFalse(Finance.objects.exists())
