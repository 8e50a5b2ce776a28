# Models package
from .user import User, Role
from .subscription import SubscriptionPlan
from .gym import Gym
from .client import Client, SubscriptionStatus
from .payment import Payment
from .trainer import Trainer, Shift, SalaryType
from .attendance import TrainerAttendance, AttendanceStatus
