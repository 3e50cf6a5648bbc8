"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.catalog.models import Category, Product
from backend.orders.models import Order, OrderItem
from backend.prescriptions.models import Prescription, RefillRequest, TransferRequest
from backend.appointments.models import Appointment
from backend.contact.models import ContactForm
from backend.notifications.models import Notification
from backend.wordpress.models import BlogPost
from decimal import Decimal
from datetime import timedelta
from django.utils import timezone
from django.utils.text import slugify
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(email=None, password='Testpass123!', name=None, role=User.ROLE_CUSTOMER, **extra):
        """Create a test customer"""
        if not email:
            email = f'user_{TestDataFactory.random_string(6).lower()}@test.com'
        return User.objects.create_user(
            email=email,
            password=password,
            name=name or 'Test User',
            role=role,
            **extra
        )

    @staticmethod
    def create_admin(email=None, password='Adm1n!Secure#Pass', name='Test Admin'):
        """Create a test admin"""
        if not email:
            email = f'admin_{TestDataFactory.random_string(6).lower()}@test.com'
        return TestDataFactory.create_user(email=email, password=password, name=name,
                                           role=User.ROLE_ADMIN, is_staff=True)

    @staticmethod
    def create_category(name=None, description=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(
            name=name,
            description=description or f'Test category {name}'
        )

    @staticmethod
    def create_product(name=None, price=None, stock=50, category=None, **extra):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if price is None:
            price = Decimal('9.99')
        return Product.objects.create(
            name=name,
            price=price,
            stock=stock,
            category=category,
            **extra
        )

    @staticmethod
    def create_order(user=None, products=None, status=Order.STATUS_PENDING, **extra):
        """Create a test order with one line per (product, quantity) pair"""
        order = Order.objects.create(
            user=user,
            status=status,
            customer_email=user.email if user else 'guest@test.com',
            customer_name=user.name if user else 'Guest',
            **extra
        )
        for product, quantity in products or []:
            OrderItem.objects.create(
                order=order,
                product=product,
                product_name=product.name,
                quantity=quantity,
                price=product.price
            )
        order.recalculate_total()
        return order

    @staticmethod
    def create_prescription(user=None, medication='Amoxicillin', request_type='standard', status='pending'):
        """Create a test prescription"""
        return Prescription.objects.create(
            user=user,
            medication=medication,
            request_type=request_type,
            status=status,
            patient_name=user.name if user else 'Jane Patient',
            patient_phone='555-0100'
        )

    @staticmethod
    def create_refill_request(user=None, medication='Lisinopril', urgency='normal', status='pending'):
        """Create a test refill request"""
        return RefillRequest.objects.create(
            user=user,
            medication=medication,
            dosage='10mg',
            urgency=urgency,
            status=status,
            patient_name=user.name if user else 'Jane Patient'
        )

    @staticmethod
    def create_transfer_request(user=None, medications=None, status='pending'):
        """Create a test transfer request"""
        return TransferRequest.objects.create(
            user=user,
            current_pharmacy='Corner Drugs',
            medications=medications or ['Metformin'],
            status=status,
            patient_name=user.name if user else 'Jane Patient'
        )

    @staticmethod
    def create_appointment(user=None, status=Appointment.STATUS_PENDING, days_ahead=3):
        """Create a test appointment"""
        return Appointment.objects.create(
            user=user,
            first_name='Jane',
            last_name='Patient',
            email=user.email if user else 'jane@test.com',
            phone='555-0100',
            service='Flu Shot',
            preferred_date=timezone.now().date() + timedelta(days=days_ahead),
            preferred_time='10:00 AM',
            status=status
        )

    @staticmethod
    def create_contact(name='Jane Patient', message='Do you carry this?', status='new'):
        """Create a test contact form submission"""
        return ContactForm.objects.create(
            name=name,
            email='jane@test.com',
            message=message,
            status=status
        )

    @staticmethod
    def create_notification(user=None, admin_only=None, read=False, type='system'):
        """Create a test notification; no user means an admin notification"""
        return Notification.objects.create(
            user=user,
            admin_only=user is None if admin_only is None else admin_only,
            type=type,
            title='Test notification',
            message='Something happened',
            read=read
        )

    @staticmethod
    def create_blog_post(title=None, status=BlogPost.STATUS_PUBLISH, source=BlogPost.SOURCE_LOCAL, **extra):
        """Create a test blog post"""
        if not title:
            title = f'Post {TestDataFactory.random_string(6)}'
        return BlogPost.objects.create(
            title=title,
            slug=slugify(title),
            content='<p>Body</p>',
            status=status,
            source=source,
            published_at=timezone.now() if status == BlogPost.STATUS_PUBLISH else None,
            **extra
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
