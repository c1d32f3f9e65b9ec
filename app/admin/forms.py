from decimal import Decimal
from flask import current_app
from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileAllowed
from wtforms import StringField, PasswordField, BooleanField, DecimalField, IntegerField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional, ValidationError
from app.utils.validators import FALSE_VALUES, IMAGE_EXTENSIONS, MaxImageSize, ValueRequired, validate_phone

class EditUserForm(FlaskForm):
    """Form for editing a student/parent account"""
    name = StringField('Name', validators=[Optional(), Length(min=2, max=100)])
    phone = StringField('Phone', validators=[Optional(), validate_phone])
    note = TextAreaField('Note', validators=[Optional(), Length(max=500)])
    remove_photo = BooleanField('Remove photo', false_values=FALSE_VALUES)
    photo = FileField('Photo', validators=[
        FileAllowed(IMAGE_EXTENSIONS, 'Photo must be a JPG, PNG or WEBP file'),
        MaxImageSize()
    ])


class ApprovalForm(FlaskForm):
    """Optional note recorded with a registration approval"""
    notes = TextAreaField('Approval notes', validators=[Optional(), Length(max=500)])


class RejectionForm(FlaskForm):
    """Optional reason shown to the student"""
    reason = TextAreaField('Reason', validators=[Optional(), Length(max=500)])


class SetBalanceForm(FlaskForm):
    """Overwrite a wallet balance after re-entering admin credentials"""
    balance = DecimalField('New balance', places=2, validators=[
        ValueRequired(message='Please enter a valid balance amount'),
        NumberRange(min=0, message='Balance cannot be negative')
    ])
    admin_email = StringField('Admin email', validators=[DataRequired(), Email()])
    admin_password = PasswordField('Admin password', validators=[DataRequired()])


class IdListField(StringField):
    """Accepts a JSON array or a comma separated string of ids"""

    def process_formdata(self, valuelist):
        ids = []
        for value in valuelist:
            ids.extend(str(value).split(','))
        self.data = [v.strip() for v in ids if v.strip()]

    def _value(self):
        return ', '.join(self.data or [])


class BulkActionForm(FlaskForm):
    """Ids for bulk approve/reject"""
    ids = IdListField('IDs', validators=[DataRequired(message='Select at least one item')])


class MenuItemForm(FlaskForm):
    """Create/edit a menu item"""
    name = StringField('Name', validators=[DataRequired(message='Meal name is required.'), Length(max=120)])
    category = StringField('Category', validators=[DataRequired(message='Category is required.')])
    price = DecimalField('Price', places=2, validators=[
        ValueRequired(message='Price must be greater than 0.')
    ])
    stock = IntegerField('Stock', validators=[
        ValueRequired(message='Stock must be 0 or more.'),
        NumberRange(min=0, message='Stock must be 0 or more.')
    ])
    is_active = BooleanField('Visible to students', default=True, false_values=FALSE_VALUES)
    image = FileField('Image', validators=[
        FileAllowed(IMAGE_EXTENSIONS, 'Image must be a JPG, PNG or WEBP file'),
        MaxImageSize()
    ])

    def validate_price(self, field):
        if field.data is None or field.data <= 0:
            raise ValidationError('Price must be greater than 0.')
        limit = Decimal(str(current_app.config.get('MAX_MENU_PRICE', 20000)))
        if field.data > limit:
            raise ValidationError(f'Price cannot exceed ₱{limit:,.0f}.')


class StockForm(FlaskForm):
    stock = IntegerField('Stock', validators=[
        ValueRequired(message='Stock must be 0 or more.'),
        NumberRange(min=0, message='Stock must be 0 or more.')
    ])


class VisibilityForm(FlaskForm):
    is_active = BooleanField('Visible to students', false_values=FALSE_VALUES)


class DateRangeForm(FlaskForm):
    start = StringField('From', validators=[DataRequired()])
    end = StringField('To', validators=[DataRequired()])


class MonthForm(FlaskForm):
    year = IntegerField('Year', validators=[ValueRequired(), NumberRange(min=2000, max=2100)])
    month = IntegerField('Month', validators=[ValueRequired(), NumberRange(min=1, max=12)])


class MarkReadForm(FlaskForm):
    ids = IdListField('IDs', validators=[Optional()])
    all = BooleanField('All', false_values=FALSE_VALUES)
