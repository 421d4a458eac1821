from django import forms
from django.core.validators import MaxValueValidator
from decimal import Decimal

from .choices import AssessmentStatus, Term
from .structures import Assessment, SubjectResult
from .weightage import validate_weightage


class AssessmentForm(forms.Form):
    """
    Form for creating/editing weighted assessments.

    Pass the sibling assessments already stored for the same term so the
    form can enforce the 100% weightage cap. When editing, pass the
    assessment's own id so it is not counted twice.
    """
    name = forms.CharField(
        max_length=100,
        widget=forms.TextInput(attrs={'class': 'input input-bordered w-full', 'placeholder': 'e.g., Mid-term'})
    )
    weightage = forms.DecimalField(
        max_digits=5,
        decimal_places=2,
        widget=forms.NumberInput(attrs={'class': 'input input-bordered w-full', 'min': '1', 'max': '100'})
    )
    max_marks = forms.DecimalField(
        max_digits=6,
        decimal_places=2,
        initial=Decimal('100'),
        widget=forms.NumberInput(attrs={'class': 'input input-bordered w-full', 'min': '1'})
    )
    term = forms.ChoiceField(choices=Term.choices)
    exam_date = forms.DateField(
        widget=forms.DateInput(attrs={'class': 'input input-bordered w-full', 'type': 'date'})
    )
    status = forms.ChoiceField(choices=AssessmentStatus.choices, initial=AssessmentStatus.DRAFT)
    academic_year = forms.CharField(required=False, widget=forms.HiddenInput())
    subject_id = forms.CharField(required=False, widget=forms.HiddenInput())
    class_id = forms.CharField(required=False, widget=forms.HiddenInput())

    def __init__(self, *args, existing_assessments=(), assessment_id=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.existing_assessments = list(existing_assessments)
        self.assessment_id = assessment_id
        self.weightage_verdict = None

    def clean_name(self):
        name = self.cleaned_data.get('name', '').strip()
        if not name:
            raise forms.ValidationError('Assessment name is required.')
        return name

    def clean_weightage(self):
        weightage = self.cleaned_data.get('weightage')
        if weightage is not None and (weightage <= 0 or weightage > 100):
            raise forms.ValidationError('Weightage must be between 1 and 100.')
        return weightage

    def clean_max_marks(self):
        max_marks = self.cleaned_data.get('max_marks')
        if max_marks is not None and max_marks <= 0:
            raise forms.ValidationError('Maximum marks must be greater than 0.')
        return max_marks

    def clean(self):
        cleaned_data = super().clean()
        if self.errors:
            return cleaned_data

        self.weightage_verdict = validate_weightage(self.existing_assessments, self.to_assessment())
        if not self.weightage_verdict.is_valid:
            self.add_error('weightage', self.weightage_verdict.error)

        return cleaned_data

    def to_assessment(self):
        """Assessment built from cleaned data (call after is_valid())."""
        data = self.cleaned_data
        return Assessment(
            assessment_id=self.assessment_id,
            name=data['name'],
            weightage=data['weightage'],
            max_marks=data['max_marks'],
            term=data['term'],
            academic_year=data.get('academic_year') or None,
            subject_id=data.get('subject_id') or None,
            class_id=data.get('class_id') or None,
            status=data['status'],
        )


class MarksEntryForm(forms.Form):
    """Form for entering one student's marks in one subject."""
    student_id = forms.CharField(widget=forms.HiddenInput())
    subject_id = forms.CharField(widget=forms.HiddenInput())
    marks = forms.DecimalField(
        required=False,
        min_value=Decimal('0'),
        max_digits=6,
        decimal_places=2,
        widget=forms.NumberInput(attrs={
            'class': 'input input-sm input-bordered w-16 text-center',
            'min': '0',
            'step': '0.01'
        })
    )

    def __init__(self, *args, max_marks=Decimal('100'), **kwargs):
        super().__init__(*args, **kwargs)
        self.max_marks = Decimal(str(max_marks))
        self.fields['marks'].validators.append(MaxValueValidator(self.max_marks))
        self.fields['marks'].widget.attrs['max'] = str(self.max_marks)

    def to_subject_result(self, subject_code='', subject_name='', is_principal=None):
        """
        SubjectResult on the 0-100 scale, for the grading engine.

        Marks out of a different maximum are converted to a percentage.
        """
        data = self.cleaned_data
        marks = data.get('marks')
        if marks is not None and self.max_marks != 100:
            marks = round(marks / self.max_marks * 100, 2)
        return SubjectResult(
            subject_id=data['subject_id'],
            student_id=data['student_id'],
            marks_obtained=marks,
            subject_code=subject_code,
            subject_name=subject_name,
            is_principal=is_principal,
        )
