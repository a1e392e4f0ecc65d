from flask_wtf import FlaskForm
from wtforms import StringField, IntegerField, FloatField, TextAreaField, SelectField, DateField, DateTimeField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, ValidationError
from wtforms_sqlalchemy.fields import QuerySelectField

from app.models.user import User, ROLE_ADMIN
from app.models.equipment import STATUS_APPROVED, STATUS_REJECTED

DATETIME_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M', '%Y-%m-%d %H:%M:%S', '%Y-%m-%d']


def admin_users():
    return User.query.filter_by(role=ROLE_ADMIN).order_by(User.name)


# Form to create/edit a tour
class TourForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(min=5, message='Title must be at least 5 characters.')])
    location = StringField('Location', validators=[DataRequired(), Length(min=3, message='Location is required.')])
    start_date = DateTimeField('Start date', format=DATETIME_FORMATS, validators=[DataRequired(message='Please enter a valid start date.')])
    end_date = DateTimeField('End date', format=DATETIME_FORMATS, validators=[DataRequired(message='Please enter a valid end date.')])
    registration_deadline = DateTimeField('Registration deadline', format=DATETIME_FORMATS, validators=[DataRequired(message='Please enter a valid deadline.')])
    description = TextAreaField('Description', validators=[DataRequired(), Length(min=20, message='Description must be at least 20 characters.')])
    participant_limit = IntegerField('Participant limit', validators=[NumberRange(min=1, message='Limit must be a positive number.')])
    duration = StringField('Duration', validators=[DataRequired(message='Duration is required.')])
    elevation_gain = IntegerField('Elevation gain (m)', validators=[NumberRange(min=0, message='Elevation gain must be a positive number.')])
    fee = FloatField('Fee (EUR)', validators=[NumberRange(min=0, message='Fee must be a positive number.')])
    leader = QuerySelectField('Tour leader', query_factory=admin_users, get_label='name', allow_blank=True)

    def validate_end_date(self, field):
        if self.start_date.data and field.data and field.data < self.start_date.data:
            raise ValidationError('End date must be on or after the start date.')

    def validate_registration_deadline(self, field):
        if self.end_date.data and field.data and field.data > self.end_date.data:
            raise ValidationError('Registration deadline must not be after the end date.')

    def tour_values(self):
        return {
            'title': self.title.data,
            'location': self.location.data,
            'description': self.description.data,
            'start_date': self.start_date.data,
            'end_date': self.end_date.data,
            'registration_deadline': self.registration_deadline.data,
            'participant_limit': self.participant_limit.data,
            'duration': self.duration.data,
            'elevation_gain': self.elevation_gain.data,
            'fee': self.fee.data,
            'leader_id': self.leader.data.id if self.leader.data else None,
        }


# Form for a rentable material
class MaterialForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired()])
    description = TextAreaField('Description')
    quantity_available = IntegerField('Quantity available', validators=[NumberRange(min=0)])
    price = FloatField('Price (EUR)', validators=[NumberRange(min=0)])
    # "38:10, 39:10", a JSON object or its text form
    sizes = StringField('Sizes', validators=[Optional()])


# Member's reservation request
class ReservationForm(FlaskForm):
    start_date = DateField('Start date', format='%Y-%m-%d', validators=[DataRequired(message='Please enter a valid start date.')])
    end_date = DateField('End date', format='%Y-%m-%d', validators=[DataRequired(message='Please enter a valid end date.')])
    quantity = IntegerField('Quantity', validators=[NumberRange(min=1, message='Quantity must be at least 1.')])
    size = StringField('Size', validators=[Optional()])

    def validate_end_date(self, field):
        if self.start_date.data and field.data and field.data < self.start_date.data:
            raise ValidationError('End date must be on or after the start date.')


class DecisionForm(FlaskForm):
    status = SelectField('Decision', choices=[(STATUS_APPROVED, 'Approve'), (STATUS_REJECTED, 'Reject')],
                         validators=[DataRequired()])


class PostForm(FlaskForm):
    content = TextAreaField('Content', validators=[DataRequired(message='Content cannot be empty.')])
    color = StringField('Color', validators=[Optional(), Length(max=50)])


class CommentForm(FlaskForm):
    content = TextAreaField('Comment', validators=[DataRequired(message='Comment cannot be empty.')])


class ProfileForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=150)])
