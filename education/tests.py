import json
import os
import tempfile
from io import StringIO
from datetime import date

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.urls import reverse

from .exceptions import ValidationError, NotFoundError, NotEligibleError, ConflictError, UnauthorizedError
from .fields import pick, REGISTRATION_NUMBER_ALIASES
from .models import Student, Unit, AllocatedUnit, RegisteredUnit
from .services import allocation, students

User = get_user_model()


class AllocationWorkflowTestCase(TestCase):
    def setUp(self):
        """Set up test data"""
        self.student = Student.objects.create(
            registration_number="CS/001/2021",
            name="Jane Wanjiku",
            course="Computer Science",
            level_of_study="2",
        )
        self.other_student = Student.objects.create(
            registration_number="CS/002/2021",
            name="John Otieno",
            course="Computer Science",
            level_of_study="2",
        )
        self.u1 = Unit.objects.create(unit_name="Programming Fundamentals", unit_code="CS101")
        self.u2 = Unit.objects.create(unit_name="Discrete Mathematics", unit_code="CS102")

    def test_allocate_units(self):
        """Test allocating two units to a student"""
        outcome = allocation.allocate_units(self.student, [self.u1.id, self.u2.id], semester=1, academic_year='2024/2025')

        self.assertEqual(outcome.summary, {'total_requested': 2, 'successfully_allocated': 2, 'errors': 0})
        self.assertEqual(AllocatedUnit.objects.filter(student=self.student, status='allocated').count(), 2)
        self.assertNotIn('errors', outcome.to_dict())

    def test_duplicate_allocation_reported_as_error(self):
        """Test that re-allocating an active unit is a per-item error"""
        first = allocation.allocate_units(self.student, [self.u1.id, self.u2.id], semester=1, academic_year='2024/2025')
        existing = first.allocated[0]

        outcome = allocation.allocate_units(self.student, [self.u1.id], semester=1, academic_year='2024/2025')

        self.assertEqual(outcome.summary['successfully_allocated'], 0)
        self.assertEqual(outcome.summary['errors'], 1)
        self.assertEqual(outcome.errors, ["Unit CS101 already allocated for this semester"])
        existing.refresh_from_db()
        self.assertEqual(existing.status, 'allocated')
        self.assertEqual(AllocatedUnit.objects.filter(student=self.student, unit=self.u1).count(), 1)

    def test_same_unit_other_semester_is_allowed(self):
        allocation.allocate_units(self.student, [self.u1.id], semester=1)
        outcome = allocation.allocate_units(self.student, [self.u1.id], semester=2)
        self.assertEqual(outcome.summary['successfully_allocated'], 1)

    def test_unknown_unit_does_not_stop_the_rest(self):
        outcome = allocation.allocate_units(self.student, [9999, self.u2.id])

        self.assertEqual(outcome.errors, ["Unit with ID 9999 not found"])
        self.assertEqual([a.unit.unit_code for a in outcome.allocated], ["CS102"])

    def test_allocation_input_validation(self):
        with self.assertRaises(ValidationError):
            allocation.allocate_units(self.student, [])
        with self.assertRaises(ValidationError):
            allocation.allocate_units(self.student, [self.u1.id], semester=3)
        with self.assertRaises(ValidationError):
            allocation.allocate_units(self.student, [self.u1.id], academic_year='2024/2026')
        with self.assertRaises(NotFoundError):
            allocation.allocate_units('XX/999/2020', [self.u1.id])
        self.assertFalse(AllocatedUnit.objects.exists())

    def test_fractional_ids_and_semesters_rejected(self):
        outcome = allocation.allocate_units(self.student, [1.9, float(self.u1.id)])

        self.assertEqual(outcome.errors, ["Unit with ID 1.9 not found"])
        self.assertEqual([a.unit.unit_code for a in outcome.allocated], ["CS101"])

        with self.assertRaises(ValidationError):
            allocation.allocate_units(self.student, [self.u2.id], semester=1.7)
        with self.assertRaises(ValidationError):
            allocation.allocate_units(self.student, [self.u2.id], semester=True)
        self.assertEqual(AllocatedUnit.objects.count(), 1)

    def test_allocate_by_registration_number(self):
        outcome = allocation.allocate_units("CS/001/2021", [self.u1.id])
        self.assertEqual(outcome.student, self.student)

    def test_register_allocated_unit(self):
        """Test registering an allocation creates exactly one registered unit"""
        allocated = allocation.allocate_units(self.student, [self.u1.id]).allocated[0]

        registered = allocation.register_allocated_unit(self.student, allocated.id)

        self.assertEqual(registered.unit_code, "CS101")
        self.assertEqual(registered.status, "registered")
        allocated.refresh_from_db()
        self.assertEqual(allocated.status, AllocatedUnit.STATUS_REGISTERED)
        self.assertEqual(RegisteredUnit.objects.filter(student=self.student).count(), 1)

        with self.assertRaises(NotEligibleError):
            allocation.register_allocated_unit(self.student, allocated.id)
        self.assertEqual(RegisteredUnit.objects.filter(student=self.student).count(), 1)

    def test_register_someone_elses_allocation(self):
        allocated = allocation.allocate_units(self.student, [self.u1.id]).allocated[0]

        with self.assertRaises(NotEligibleError):
            allocation.register_allocated_unit(self.other_student, allocated.id)
        with self.assertRaises(NotEligibleError):
            allocation.register_allocated_unit(self.student, 'not-a-uuid')

        allocated.refresh_from_db()
        self.assertEqual(allocated.status, 'allocated')

    def test_register_when_unit_already_registered_directly(self):
        allocated = allocation.allocate_units(self.student, [self.u1.id]).allocated[0]
        allocation.register_unit_direct("CS/001/2021", "Programming Fundamentals", "CS101")

        with self.assertRaises(ConflictError):
            allocation.register_allocated_unit(self.student, allocated.id)

        allocated.refresh_from_db()
        self.assertEqual(allocated.status, 'allocated')

    def test_cancel_then_reallocate(self):
        """Test a cancelled allocation can be allocated again"""
        allocated = allocation.allocate_units(self.student, [self.u1.id]).allocated[0]

        cancelled = allocation.cancel_allocation(allocated.id)
        self.assertEqual(cancelled.status, 'cancelled')

        outcome = allocation.allocate_units(self.student, [self.u1.id])
        self.assertEqual(outcome.summary['successfully_allocated'], 1)
        self.assertEqual(AllocatedUnit.objects.filter(student=self.student, unit=self.u1).count(), 2)

        cancelled.refresh_from_db()
        self.assertIsNone(cancelled.active)
        self.assertTrue(outcome.allocated[0].active)

    def test_database_rejects_second_active_allocation(self):
        """Test the unique index holds even when the service layer is bypassed"""
        AllocatedUnit.objects.create(student=self.student, unit=self.u1, semester=1, academic_year='2024/2025')

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                AllocatedUnit.objects.create(student=self.student, unit=self.u1, semester=1, academic_year='2024/2025')

        AllocatedUnit.objects.create(
            student=self.student, unit=self.u1, semester=1, academic_year='2024/2025', status='cancelled',
        )
        self.assertEqual(AllocatedUnit.objects.filter(student=self.student, unit=self.u1).count(), 2)

    def test_cancel_registered_allocation_keeps_registration(self):
        allocated = allocation.allocate_units(self.student, [self.u1.id]).allocated[0]
        allocation.register_allocated_unit(self.student, allocated.id)

        allocation.cancel_allocation(allocated.id)

        allocated.refresh_from_db()
        self.assertEqual(allocated.status, 'cancelled')
        self.assertTrue(RegisteredUnit.objects.filter(student=self.student, unit_code="CS101").exists())

    def test_cancel_unknown_allocation(self):
        with self.assertRaises(NotFoundError):
            allocation.cancel_allocation('00000000-0000-0000-0000-000000000000')
        with self.assertRaises(NotFoundError):
            allocation.cancel_allocation('bogus')

    def test_list_allocated_units_order(self):
        allocation.allocate_units(self.student, [self.u2.id, self.u1.id], semester=2)
        allocation.allocate_units(self.student, [self.u2.id], semester=1)

        student, allocations = allocation.list_allocated_units("CS/001/2021")

        self.assertEqual(student, self.student)
        self.assertEqual(
            [(a.semester, a.unit.unit_code) for a in allocations],
            [(1, "CS102"), (2, "CS101"), (2, "CS102")],
        )

    def test_create_unit_duplicate_code(self):
        allocation.create_unit("Data Structures", "CS201")
        with self.assertRaises(ConflictError):
            allocation.create_unit("Data Structures II", "CS201")

    def test_register_unit_direct_adds_unit_to_catalog(self):
        student, registered = allocation.register_unit_direct("CS/001/2021", "Networks", "CS301")

        self.assertEqual(student, self.student)
        self.assertEqual(registered.status, 'active')
        self.assertTrue(Unit.objects.filter(unit_code="CS301").exists())
        with self.assertRaises(ConflictError):
            allocation.register_unit_direct("CS/001/2021", "Networks", "CS301")


class StudentRecordsTestCase(TestCase):
    def setUp(self):
        self.data = {
            'name': "Amina Hassan",
            'registration_number': "BBA/010/2022",
            'course': "Business Administration",
            'level_of_study': "1",
            'email': "amina@example.com",
            'password': "s3cret-pass",
        }

    def test_create_student(self):
        """Test student creation hashes the password"""
        student = students.create_student(self.data)

        self.assertEqual(student.status, 'active')
        self.assertNotEqual(student.password, "s3cret-pass")
        self.assertTrue(student.check_password("s3cret-pass"))
        self.assertNotIn('password', student.to_dict())

    def test_create_student_requires_fields(self):
        with self.assertRaises(ValidationError):
            students.create_student({'name': "No Reg"})

    def test_create_duplicate_student(self):
        students.create_student(self.data)
        with self.assertRaises(ConflictError):
            students.create_student(self.data)

    def test_authenticate_student(self):
        students.create_student(self.data)

        student = students.authenticate_student("BBA/010/2022", "s3cret-pass")
        self.assertEqual(student.name, "Amina Hassan")

        with self.assertRaises(UnauthorizedError):
            students.authenticate_student("BBA/010/2022", "wrong")
        with self.assertRaises(UnauthorizedError):
            students.authenticate_student("BBA/999/2022", "s3cret-pass")

    def test_academic_leave(self):
        student = students.create_student(self.data)

        students.grant_academic_leave(student, start_date='2025-01-31', reason="Medical")
        student.refresh_from_db()
        self.assertEqual(student.status, 'on_leave')
        self.assertTrue(student.academic_leave)
        self.assertEqual(student.academic_leave_start, date(2025, 1, 31))
        self.assertEqual(student.academic_leave_reason, "Medical")

        students.cancel_academic_leave(student.id)
        student.refresh_from_db()
        self.assertEqual(student.status, 'active')
        self.assertIsNone(student.academic_leave_start)

    def test_academic_leave_rejects_bad_dates(self):
        student = students.create_student(self.data)
        with self.assertRaises(ValidationError):
            students.grant_academic_leave(student, start_date='31/01/2025')
        with self.assertRaises(ValidationError):
            students.grant_academic_leave(student, start_date='2025-03-01', end_date='2025-02-01')

    def test_add_months_clamps_day(self):
        self.assertEqual(students._add_months(date(2024, 11, 30), 3), date(2025, 2, 28))

    def test_bulk_deregistration_skips_unknown(self):
        first = students.create_student(self.data)
        second = students.create_student(dict(self.data, registration_number="BBA/011/2022"))

        result = students.deregister_students(
            student_ids=[str(first.id), 'not-an-id'],
            registration_numbers=["BBA/011/2022", "BBA/404/2022"],
            reason="Fees",
        )

        self.assertEqual({s.pk for s in result}, {first.pk, second.pk})
        self.assertEqual(Student.objects.filter(status='deregistered').count(), 2)

        result = students.deregister_students(student_ids=[str(first.id)], registration_numbers=[first.registration_number])
        self.assertEqual([s.pk for s in result], [first.pk])

        students.restore_student(first.id)
        first.refresh_from_db()
        self.assertEqual(first.status, 'active')
        self.assertFalse(first.deregistered)

    def test_promote_student(self):
        students.create_student(self.data)
        student = students.promote_student("BBA/010/2022", "2")
        self.assertEqual(student.level_of_study, "2")

    def test_pick_aliases(self):
        self.assertEqual(pick({'registration_number': ' A/1 ', 'regNumber': 'B/2'}, REGISTRATION_NUMBER_ALIASES), 'A/1')
        self.assertEqual(pick({'registrationNumber': '', 'reg_number': 'C/3'}, REGISTRATION_NUMBER_ALIASES), 'C/3')
        self.assertIsNone(pick({}, REGISTRATION_NUMBER_ALIASES))


class PortalApiTestCase(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="registrar", password="adminpass123", is_staff=True)
        self.student = Student(
            registration_number="CS/001/2021",
            name="Jane Wanjiku",
            course="Computer Science",
            level_of_study="2",
        )
        self.student.set_password("studentpass")
        self.student.save()
        self.other_student = Student.objects.create(
            registration_number="CS/002/2021",
            name="John Otieno",
            course="Computer Science",
            level_of_study="2",
        )
        self.unit = Unit.objects.create(unit_name="Programming Fundamentals", unit_code="CS101")

    def post_json(self, url, data):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')

    def login_student(self, student):
        session = self.client.session
        session['student_id'] = str(student.id)
        session.save()

    def test_admin_endpoints_require_login(self):
        response = self.client.get(reverse('api_students'))
        self.assertEqual(response.status_code, 401)

        self.login_student(self.student)
        response = self.client.get(reverse('api_students'))
        self.assertEqual(response.status_code, 401)

    def test_non_staff_user_is_forbidden(self):
        user = User.objects.create_user(username="clerk", password="clerkpass123")
        self.client.force_login(user)
        response = self.client.get(reverse('api_students'))
        self.assertEqual(response.status_code, 403)

    def test_admin_login(self):
        response = self.post_json(reverse('api_admin_login'), {'username': 'registrar', 'password': 'adminpass123'})
        self.assertEqual(response.status_code, 200)

        response = self.client.get(reverse('api_admin_verify_session'))
        self.assertEqual(response.json()['valid'], True)

        response = self.post_json(reverse('api_admin_login'), {'username': 'registrar', 'password': 'nope'})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], 'Invalid credentials')

    def test_student_login(self):
        response = self.post_json(reverse('api_student_login'), {'registration_number': 'CS/001/2021', 'password': 'studentpass'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['student_id'], str(self.student.id))
        self.assertEqual(self.client.session['student_id'], str(self.student.id))

    def test_create_and_list_students(self):
        self.client.force_login(self.admin)
        response = self.post_json(reverse('api_students'), {
            'name': "Amina Hassan",
            'registration_number': "BBA/010/2022",
            'course': "Business Administration",
            'level_of_study': "1",
        })
        self.assertEqual(response.status_code, 201)

        response = self.post_json(reverse('api_students'), {
            'name': "Amina Hassan",
            'registration_number': "BBA/010/2022",
            'course': "Business Administration",
            'level_of_study': "1",
        })
        self.assertEqual(response.status_code, 409)

        response = self.client.get(reverse('api_students'), {'status': 'active'})
        self.assertEqual(len(response.json()), 3)

    def test_invalid_json_body(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('api_promote_student'), data='{not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Invalid JSON data')

    def test_student_lookup_with_slashes(self):
        self.login_student(self.student)
        response = self.client.get(reverse('api_student_by_registration', args=['CS/001/2021']))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['name'], "Jane Wanjiku")

        response = self.client.get(reverse('api_student_by_registration', args=['CS/002/2021']))
        self.assertEqual(response.status_code, 403)

    def test_allocation_flow_over_http(self):
        """Test allocate, list, register and cancel through the API"""
        self.client.force_login(self.admin)
        response = self.post_json(
            reverse('api_allocate_units_by_registration', args=['CS/001/2021']),
            {'unit_ids': [self.unit.id], 'semester': 1, 'academic_year': '2024/2025'},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['summary']['successfully_allocated'], 1)
        allocation_id = body['allocated_units'][0]['id']
        self.assertEqual(AllocatedUnit.objects.get(pk=allocation_id).allocated_by, self.admin)

        self.client.logout()
        self.login_student(self.student)
        response = self.client.get(reverse('api_allocated_units', args=['CS/001/2021']))
        self.assertEqual(response.json()['count'], 1)

        response = self.post_json(
            reverse('api_register_allocated_unit', args=['CS/001/2021']),
            {'allocated_unit_id': allocation_id},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['registered_unit']['unit_code'], 'CS101')

        response = self.post_json(
            reverse('api_register_allocated_unit', args=['CS/001/2021']),
            {'allocated_unit_id': allocation_id},
        )
        self.assertEqual(response.status_code, 404)

        response = self.client.delete(reverse('api_cancel_allocation', args=[allocation_id]))
        self.assertEqual(response.status_code, 401)

        self.client.force_login(self.admin)
        response = self.client.delete(reverse('api_cancel_allocation', args=[allocation_id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['allocated_unit']['status'], 'cancelled')

    def test_student_cannot_register_for_another_student(self):
        allocated = allocation.allocate_units(self.other_student, [self.unit.id]).allocated[0]
        self.login_student(self.student)

        response = self.post_json(
            reverse('api_register_allocated_unit', args=['CS/002/2021']),
            {'allocated_unit_id': str(allocated.id)},
        )
        self.assertEqual(response.status_code, 403)

    def test_units_catalog(self):
        response = self.post_json(reverse('api_units'), {'unit_name': "Networks", 'unit_code': "CS301"})
        self.assertEqual(response.status_code, 401)

        self.client.force_login(self.admin)
        response = self.post_json(reverse('api_units'), {'unit_name': "Networks", 'unit_code': "CS301"})
        self.assertEqual(response.status_code, 201)

        response = self.client.get(reverse('api_units'))
        self.assertEqual([u['unit_code'] for u in response.json()], ["CS101", "CS301"])

    def test_academic_leave_endpoints(self):
        self.client.force_login(self.admin)
        response = self.post_json(reverse('api_academic_leave'), {'registrationNumber': 'CS/001/2021', 'reason': 'Medical'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['student']['status'], 'on_leave')

        response = self.client.delete(reverse('api_student_academic_leave', args=[self.student.id]))
        self.assertEqual(response.json()['student']['status'], 'active')

        response = self.post_json(reverse('api_academic_leave'), {'reason': 'Medical'})
        self.assertEqual(response.status_code, 400)

    def test_deregister_by_registration(self):
        self.client.force_login(self.admin)
        response = self.post_json(reverse('api_deregister_by_registration', args=['CS/002/2021']), {'reason': 'Fees'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['student']['deregistration_reason'], 'Fees')

        response = self.client.get(reverse('api_students_by_status', args=['deregistered']))
        self.assertEqual([s['registration_number'] for s in response.json()], ['CS/002/2021'])


class ManagementCommandsTestCase(TestCase):
    def test_create_portal_admin(self):
        out = StringIO()
        call_command('create_portal_admin', 'registrar', 'adminpass123', '--role', 'registrar', stdout=out)

        user = User.objects.get(username='registrar')
        self.assertTrue(user.is_portal_admin())
        self.assertEqual(user.role, 'registrar')
        self.assertIn('Created admin user', out.getvalue())

        with self.assertRaises(CommandError):
            call_command('create_portal_admin', 'registrar', 'other', stdout=StringIO())

    def test_load_units(self):
        Unit.objects.create(unit_name="Programming Fundamentals", unit_code="CS101")
        handle, path = tempfile.mkstemp(suffix='.csv')
        with os.fdopen(handle, 'w') as csv_file:
            csv_file.write("unit_code,unit_name\nCS101,Programming Fundamentals\nCS102,Discrete Mathematics\n,Missing Code\n")
        self.addCleanup(os.remove, path)

        out = StringIO()
        call_command('load_units', path, stdout=out)

        self.assertEqual(list(Unit.objects.values_list('unit_code', flat=True)), ["CS101", "CS102"])
        self.assertIn('1 units created, 2 skipped', out.getvalue())
