# Models:
# 1. User - Custom user model (replaces Django's default)
# 2. UserProfile - Preferences (notifications, theme, onboarding)


from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager
from django.db import models
from django.utils import timezone
from django.core.validators import RegexValidator
from django.utils.translation import gettext_lazy as _



# USER MANAGER (handles user creation)
class UserManager(BaseUserManager):
    """
    Custom user manager for User model

    Provides methods to:
    - Create regular users
    - Create superusers (platform staff)
    - Handle email-based authentication
    """

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a regular user

        Args:
            email (str): User's email address (required)
            password (str): User's password
            **extra_fields: Additional fields (first_name, company, role, etc.)

        Raises:
            ValueError: If email is not provided

        Example:
            user = User.objects.create_user(
                email='seller@acme.com.br',
                password='securepass123',
                first_name='Ana',
                company=company,
                role=User.ROLE_SELLER
            )
        """
        if not email:
            raise ValueError(_('Users must have an email address'))

        email = self.normalize_email(email)

        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)

        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)

        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', User.ROLE_OWNER)

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True'))

        return self.create_user(email, password, **extra_fields)



# USER MODEL
class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model for WorkFlow360

    Features:
    - Email-based authentication (no username)
    - Multi-tenancy support (company field)
    - Role-based access (owner, manager, seller)
    - Forced password change for provisioned accounts
    """

    email = models.EmailField(_('email address'),unique=True,max_length=255,db_index=True,help_text=_('Required. Used for login.'))
    first_name = models.CharField(_('first name'),max_length=100,blank=True)
    last_name = models.CharField(_('last name'),max_length=100,blank=True)

    # Phone validator (accepts: +5511999999999, 11999999999, etc.)
    phone_validator = RegexValidator(regex=r'^\+?\d{9,15}$',message=_('Phone number must be entered in the format: +999999999. Up to 15 digits allowed.'))
    phone = models.CharField(_('phone number'),validators=[phone_validator],max_length=17,blank=True,null=True)

    # COMPANY & ROLE (Multi-tenancy)
    company = models.ForeignKey('core.Company',on_delete=models.CASCADE,related_name='users',
              null=True,blank=True,verbose_name=_('company'),help_text=_('The company this user belongs to'))

    ROLE_OWNER = 'owner'
    ROLE_MANAGER = 'manager'
    ROLE_SELLER = 'seller'
    ROLE_CHOICES = [(ROLE_OWNER, _('Owner')),(ROLE_MANAGER, _('Manager')),(ROLE_SELLER, _('Seller')),]

    role = models.CharField(_('role'),max_length=20,choices=ROLE_CHOICES,default=ROLE_SELLER,db_index=True,
                            help_text=_('owner (billing and team), manager (whole pipeline) or seller (own leads)'))

    avatar = models.ImageField(_('profile picture'),upload_to='avatars/%Y/%m/', blank=True,null=True)
    must_change_password = models.BooleanField(_('must change password'),default=False,
                                               help_text=_('Set for accounts created with a temporary password'))
    is_active = models.BooleanField(_('active'), default=True, help_text=_('Designates whether this user should be treated as active. Unselect this instead of deleting accounts.'))
    is_staff = models.BooleanField(_('staff status'), default=False,help_text=_('Designates whether the user can log into admin site.'))
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-date_joined']
        indexes = [
            models.Index(fields=['company', 'role']),
            models.Index(fields=['is_active']),
        ]

    def __str__(self):
        full_name = self.get_full_name()
        if full_name != self.email:
            return f"{full_name} ({self.email})"
        return self.email

    def get_full_name(self):
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        elif self.first_name:
            return self.first_name
        return self.email

    def get_short_name(self):

        return self.first_name if self.first_name else self.email

    def get_initials(self):
        if self.first_name and self.last_name:
            return f"{self.first_name[0]}{self.last_name[0]}".upper()
        elif self.first_name:
            return self.first_name[0].upper()
        return self.email[0].upper()

    # ROLE CHECKS
    def is_owner(self):
        return self.role == self.ROLE_OWNER or self.is_superuser

    def is_manager(self):
        """Owners manage too"""
        return self.role in (self.ROLE_OWNER, self.ROLE_MANAGER) or self.is_superuser

    def is_seller(self):
        return self.role == self.ROLE_SELLER

    def wants_email_notifications(self):
        profile = getattr(self, 'profile', None)
        return profile.email_notifications if profile else True

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.get_full_name(),
            'initials': self.get_initials(),
            'role': self.role,
            'avatar': self.avatar.url if self.avatar else None,
            'is_active': self.is_active,
            'must_change_password': self.must_change_password,
        }



# USER PROFILE MODEL (Preferences)

class UserProfile(models.Model):
    """
    Per-user preferences, created automatically (see signals.py)
    """

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile', verbose_name=_('user'))
    email_notifications = models.BooleanField(_('email notifications'), default=True, help_text=_('Receive notification and report emails'))
    theme = models.CharField(_('theme'), max_length=20, choices=[('light', _('Light')), ('dark', _('Dark')), ('auto', _('Auto'))], default='light',
                             help_text=_('UI theme preference'))
    onboarding_completed = models.BooleanField(_('onboarding completed'), default=False)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)


    class Meta:
        verbose_name = _('user profile')
        verbose_name_plural = _('user profiles')

    def __str__(self):
        return f"Profile for: {self.user.get_full_name()}"

    def to_dict(self):
        return {
            'email_notifications': self.email_notifications,
            'theme': self.theme,
            'onboarding_completed': self.onboarding_completed,
        }
